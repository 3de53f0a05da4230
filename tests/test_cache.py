import unittest
from radiosync.cache import TrackCache
from radiosync.models import DownstreamTrack


def track(track_id):
    return DownstreamTrack(id=track_id, name=f"Track {track_id}", uri=f"spotify:track:{track_id}")


class TestTrackCache(unittest.TestCase):
    def setUp(self):
        self.evicted = []
        self.cache = TrackCache(3, on_evicted=self.evicted.append)

    def test_evicts_least_recently_added(self):
        for track_id in ["a", "b", "c", "d"]:
            self.cache.add(track(track_id))

        self.assertEqual(len(self.cache), 3)
        self.assertFalse(self.cache.contains("a"))
        self.assertTrue(self.cache.contains("d"))
        self.assertEqual(self.evicted, [track("a")])

    def test_add_existing_is_noop(self):
        for track_id in ["a", "b", "c"]:
            self.cache.add(track(track_id))

        self.assertFalse(self.cache.add(track("a")))
        self.assertEqual(len(self.cache), 3)
        self.assertEqual(self.evicted, [])

    def test_identity_is_id_not_name(self):
        self.cache.add(DownstreamTrack(id="a", name="Song"))
        self.assertTrue(self.cache.add(DownstreamTrack(id="b", name="Song")))
        self.assertFalse(self.cache.add(DownstreamTrack(id="a", name="Other name")))

    def test_contains_does_not_refresh_recency(self):
        for track_id in ["a", "b", "c"]:
            self.cache.add(track(track_id))
        self.assertTrue(self.cache.contains("a"))
        self.cache.add(track("d"))
        self.assertEqual(self.evicted, [track("a")])

    def test_without_callback(self):
        cache = TrackCache(1)
        cache.add(track("a"))
        cache.add(track("b"))
        self.assertEqual(cache.tracks(), [track("b")])

    def test_prime_fewer_than_capacity(self):
        self.cache.prime([track("x"), track("y")])
        self.assertTrue(self.cache.contains("x"))
        self.assertTrue(self.cache.contains("y"))
        self.assertFalse(self.cache.add(track("x")))
        self.assertEqual(len(self.cache), 2)

    def test_prime_keeps_most_recent(self):
        self.cache.prime([track(i) for i in ["a", "b", "c", "d", "e"]])
        self.assertEqual([t.id for t in self.cache.tracks()], ["c", "d", "e"])
        self.assertEqual(self.evicted, [])

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            TrackCache(0)


if __name__ == '__main__':
    unittest.main()
