import asyncio
import logging
import signal
import sys
import click
import uvicorn

from .config import settings
from .clients.nrk_client import NRKClient, RADIO_IDS
from .clients.spotify_auth import SpotifyAuth
from .clients.spotify_client import SpotifyClient
from .engine import SyncOrchestrator
from .errors import InitializationError, RadioSyncError
from .interval import make_interval_strategy
from . import server

logger = logging.getLogger("main")

def setup_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

class SyncService:
    def __init__(self, name, radio_id, token_path, interval_s, adaptive, cache_size, delete_evicted):
        self.radio = NRKClient(name, radio_id)
        self.spotify = SpotifyClient(token_path)
        self.orchestrator = SyncOrchestrator(
            radio=self.radio,
            spotify=self.spotify,
            cache_size=cache_size,
            interval=make_interval_strategy(adaptive, interval_s),
            fallback_interval_s=interval_s,
            startup_retry=settings.startup_retry,
            cycle_retry=settings.cycle_retry,
            delete_evicted=delete_evicted,
            logger=logging.getLogger("radiosync.sync"),
        )

        # Link orchestrator to server module
        server.orchestrator = self.orchestrator

    async def start(self):
        logger.info("Server started")
        tasks = []
        try:
            try:
                await self.spotify.initialize()
            except Exception as e:
                raise InitializationError(f"Failed to connect to Spotify: {e}") from e
            await self.orchestrator.initialize()

            tasks.append(asyncio.create_task(self.orchestrator.run_forever()))
            if settings.HTTP_SERVER_ENABLED:
                config = uvicorn.Config(server.app, host="0.0.0.0", port=settings.HTTP_SERVER_PORT, log_level="warning")
                tasks.append(asyncio.create_task(uvicorn.Server(config).serve()))

            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            pass
        finally:
            for task in tasks:
                task.cancel()
            await self.radio.close()
            await self.spotify.close()

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(0)


@click.group(help="Listen to NRK radio channels in Spotify.")
def cli():
    setup_logging()


@cli.command(help="Authenticate with Spotify and write the token file.")
@click.option("-l", "--listen", default=settings.AUTH_LISTEN, show_default=True, help="Auth server listening address")
@click.option("-f", "--token-file", default=settings.SPOTIFY_TOKEN_PATH, show_default=True, help="Token file to use")
@click.argument("client_id", required=False, default=settings.SPOTIFY_CLIENT_ID)
@click.argument("client_secret", required=False, default=settings.SPOTIFY_CLIENT_SECRET)
def auth(listen, token_file, client_id, client_secret):
    if not client_id or not client_secret:
        raise click.UsageError("CLIENT_ID and CLIENT_SECRET are required")
    spotify_auth = SpotifyAuth(client_id, client_secret, token_file, listen)
    click.echo(f"Visit {spotify_auth.listen_url()}/login to authenticate with Spotify.")
    uvicorn.run(server.create_auth_app(spotify_auth), host=spotify_auth.host, port=spotify_auth.port, log_level="warning")


@cli.command(name="server", help="Sync the radio's tracks into a playlist with the same name.")
@click.option("-f", "--token-file", default=settings.SPOTIFY_TOKEN_PATH, show_default=True, help="Token file to use")
@click.option("-i", "--interval", type=click.IntRange(min=1), default=settings.SYNC_INTERVAL_SECONDS,
              show_default=True, help="Polling interval in seconds")
@click.option("-a", "--adaptive", is_flag=True, default=settings.ADAPTIVE_INTERVAL,
              help="Automatically determine sync interval")
@click.option("-d", "--delete-evicted", is_flag=True, default=settings.DELETE_EVICTED,
              help="Delete evicted (uncached) tracks from playlist")
@click.option("-c", "--cache-size", type=click.IntRange(min=1), default=settings.CACHE_SIZE,
              show_default=True, help="Max entries to keep in cache")
@click.argument("name", required=False, default=settings.RADIO_NAME)
@click.argument("radio_id", required=False, default=settings.RADIO_ID)
def serve(token_file, interval, adaptive, delete_evicted, cache_size, name, radio_id):
    if not name or not radio_id:
        raise click.UsageError("NAME and RADIO_ID are required")
    signal.signal(signal.SIGTERM, handle_sigterm)
    try:
        service = SyncService(name, radio_id, token_file, interval, adaptive, cache_size, delete_evicted)
    except (RadioSyncError, OSError, ValueError) as e:
        logger.error(f"Failed to initialize server: {e}")
        sys.exit(1)

    try:
        asyncio.run(service.start())
    except InitializationError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


@cli.command(name="list", help="List available radio IDs.")
def list_radios():
    click.echo("Available radio IDs:")
    for radio_id in RADIO_IDS:
        click.echo(radio_id)


if __name__ == "__main__":
    cli()
