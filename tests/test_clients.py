import json
import os
import tempfile
import unittest
import httpx
from radiosync.clients.nrk_client import NRKClient
from radiosync.clients.spotify_client import AuthInfo, Profile, SpotifyClient, Token, TokenFile
from radiosync.errors import ConfigError, SpotifyError
from radiosync.models import DownstreamTrack, Playlist

LIVE_ELEMENTS = [
    {
        "title": "21st Century Schizoid Man",
        "description": "King Crimson",
        "channelId": "pyro",
        "startTime": "/Date(1406402993000+0200)/",
        "duration": "PT7M21S",
        "type": "Music",
        "imageUrl": None,
        "relativeTimeType": "Present",
    },
    {
        "title": "Room 24",
        "description": "Volbeat + King Diamond",
        "channelId": "pyro",
        "startTime": "/Date(1406403434000+0200)/",
        "duration": "PT5M6S",
        "type": "Music",
        "relativeTimeType": "Present",
    },
    {
        "title": "The King is Dead",
        "description": "Audrey Horne",
        "channelId": "pyro",
        "startTime": "/Date(1406403741000+0200)/",
        "duration": "PT5M12S",
        "type": "Music",
        "relativeTimeType": "Future",
    },
]


class TestNRKClient(unittest.IsolatedAsyncioTestCase):
    def make_client(self, handler):
        return NRKClient("P3 Pyro", "pyro", base_url="http://nrk.test",
                         client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    def test_invalid_radio_id(self):
        with self.assertRaises(ConfigError):
            NRKClient("Foo", "foo")

    def test_radio_url(self):
        client = NRKClient("P3 Pyro", "pyro", base_url="http://nrk.test/")
        self.assertEqual(client.radio_url(), "http://nrk.test/channels/pyro/liveelements/now")

    async def test_fetch_window(self):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return httpx.Response(200, json=LIVE_ELEMENTS)

        client = self.make_client(handler)
        window = await client.fetch_window()

        self.assertEqual(requested, ["/channels/pyro/liveelements/now"])
        self.assertEqual([i.title for i in window.items],
                         ["21st Century Schizoid Man", "Room 24", "The King is Dead"])
        self.assertEqual(window.current().artist, "Volbeat + King Diamond")
        self.assertEqual(window.current().duration, "PT5M6S")
        await client.close()

    async def test_invalid_response(self):
        client = self.make_client(lambda request: httpx.Response(200, text="no JSON for you!"))
        with self.assertRaises(ValueError):
            await client.fetch_window()

    async def test_http_error(self):
        client = self.make_client(lambda request: httpx.Response(503))
        with self.assertRaises(httpx.HTTPStatusError):
            await client.fetch_window()


class TestSpotifyClient(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.token_path = os.path.join(self.tmpdir.name, "token.json")
        TokenFile(
            token=Token(access_token="old", refresh_token="refresh"),
            auth=AuthInfo(client_id="id", client_secret="secret"),
            profile=Profile(id="user"),
        ).save(self.token_path)
        self.requests = []

    def tearDown(self):
        self.tmpdir.cleanup()

    def make_client(self, handler):
        def recording(request):
            self.requests.append(request)
            return handler(request)
        return SpotifyClient(
            self.token_path,
            client=httpx.AsyncClient(transport=httpx.MockTransport(recording)),
            api_url="http://api.test/v1",
            accounts_url="http://accounts.test",
        )

    async def test_refreshes_expired_token(self):
        def handler(request):
            if request.url.host == "accounts.test":
                return httpx.Response(200, json={"access_token": "new", "token_type": "Bearer", "expires_in": 3600})
            if request.headers["Authorization"] == "Bearer old":
                return httpx.Response(401, json={"error": {"status": 401}})
            return httpx.Response(200, json={"tracks": {"items": [
                {"id": "t1", "name": "Room 24", "uri": "spotify:track:t1"}
            ]}})

        client = self.make_client(handler)
        tracks = await client.search_artist_track("Volbeat", "Room 24")

        self.assertEqual(tracks, [DownstreamTrack(id="t1", name="Room 24", uri="spotify:track:t1")])
        self.assertEqual(self.requests[0].url.params["q"], "artist:Volbeat track:Room 24")
        self.assertEqual(self.requests[0].url.params["limit"], "1")
        with open(self.token_path) as f:
            saved = json.load(f)
        self.assertEqual(saved["token"]["access_token"], "new")
        self.assertEqual(saved["token"]["refresh_token"], "refresh")

    async def test_error_status_raises(self):
        client = self.make_client(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(SpotifyError) as ctx:
            await client.current_user()
        self.assertEqual(ctx.exception.status_code, 500)

    async def test_get_or_create_playlist_existing(self):
        def handler(request):
            if request.url.path == "/v1/me/playlists":
                return httpx.Response(200, json={"items": [{"id": "pl1", "name": "P3 Pyro"}], "next": None})
            return httpx.Response(200, json={"id": "pl1", "name": "P3 Pyro", "tracks": {
                "total": 2,
                "items": [
                    {"track": {"id": "a", "name": "A", "uri": "spotify:track:a"}},
                    {"track": None},
                    {"track": {"id": "b", "name": "B", "uri": "spotify:track:b"}},
                ],
            }})

        client = self.make_client(handler)
        playlist = await client.get_or_create_playlist("P3 Pyro")
        self.assertEqual(playlist.id, "pl1")
        self.assertEqual([t.id for t in playlist.tracks], ["a", "b"])
        self.assertEqual([t.id for t in await client.recent_tracks(playlist, 1)], ["b"])

    async def test_get_or_create_playlist_creates(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(201, json={"id": "new", "name": "P3 Pyro"})
            return httpx.Response(200, json={"items": [{"id": "pl1", "name": "Other"}], "next": None})

        client = self.make_client(handler)
        playlist = await client.get_or_create_playlist("P3 Pyro")
        self.assertEqual(playlist.id, "new")
        self.assertEqual(self.requests[-1].url.path, "/v1/users/user/playlists")
        self.assertEqual(json.loads(self.requests[-1].content), {"name": "P3 Pyro", "public": False})

    async def test_recent_tracks_pages_from_offset(self):
        def handler(request):
            if request.url.params.get("offset") == "148":
                return httpx.Response(200, json={
                    "items": [{"track": {"id": "t148", "uri": "spotify:track:t148"}}],
                    "next": "http://api.test/v1/playlists/pl/tracks?offset=149&limit=100",
                })
            return httpx.Response(200, json={
                "items": [{"track": {"id": "t149", "uri": "spotify:track:t149"}}],
                "next": None,
            })

        client = self.make_client(handler)
        playlist = Playlist(id="pl", name="P3 Pyro", total=150, tracks=[])
        tracks = await client.recent_tracks(playlist, 2)
        self.assertEqual([t.id for t in tracks], ["t148", "t149"])

    async def test_add_and_delete_payloads(self):
        client = self.make_client(lambda request: httpx.Response(200, json={"snapshot_id": "s"}))
        playlist = Playlist(id="pl", name="P3 Pyro")
        track = DownstreamTrack(id="a", name="A", uri="spotify:track:a")

        await client.add_track(playlist, track)
        await client.delete_track(playlist, track)

        add, delete = self.requests
        self.assertEqual((add.method, add.url.path), ("POST", "/v1/playlists/pl/tracks"))
        self.assertEqual(json.loads(add.content), {"uris": ["spotify:track:a"]})
        self.assertEqual(delete.method, "DELETE")
        self.assertEqual(json.loads(delete.content), {"tracks": [{"uri": "spotify:track:a"}]})


if __name__ == '__main__':
    unittest.main()
