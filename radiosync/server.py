import logging
import time
from fastapi import FastAPI, Depends, HTTPException, Header, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from typing import Optional
from .clients.spotify_auth import STATE_KEY, SpotifyAuth, random_state
from .config import settings
from .engine import SyncOrchestrator

logger = logging.getLogger(__name__)

app = FastAPI(title="Radio Spotify Sync")
orchestrator: Optional[SyncOrchestrator] = None

def get_token(x_token: Optional[str] = Header(None, alias="X-Token")):
    if settings.HTTP_SERVER_TOKEN and x_token != settings.HTTP_SERVER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")

@app.get("/healthz")
def healthz():
    if not orchestrator or orchestrator.cache is None or not orchestrator.next_sync_at:
        return {"status": "starting"}

    # Adaptive intervals vary, so measure lag against the scheduled wake-up
    overdue = time.time() - orchestrator.next_sync_at
    if overdue > settings.CYCLE_RETRY_BUDGET_SECONDS * 3 + 60:
        return {"status": "lagging", "overdue_s": overdue}

    return {"status": "ok"}

@app.get("/status", dependencies=[Depends(get_token)])
def status():
    if not orchestrator or orchestrator.cache is None:
        return {"status": "not_ready"}

    result = orchestrator.last_result
    return {
        "playlist": str(orchestrator.playlist),
        "cache_size": len(orchestrator.cache),
        "cache_capacity": orchestrator.cache.capacity,
        "last_sync": orchestrator.last_successful_sync,
        "next_sync": orchestrator.next_sync_at,
        "last_cycle": {
            "eligible": [str(i) for i in result.eligible],
            "matched": [str(i) for i in result.matched],
            "added": [str(t) for t in result.added],
            "finished_at": result.finished_at,
        } if result else None,
        "config": {
            "interval": str(orchestrator.interval),
            "delete_evicted": orchestrator.delete_evicted,
        }
    }


def create_auth_app(auth: SpotifyAuth) -> FastAPI:
    auth_app = FastAPI(title="Radio Spotify Sync - Spotify login")

    @auth_app.get("/login")
    def login():
        state = random_state()
        resp = RedirectResponse(auth.authorize_url(state), status_code=302)
        resp.set_cookie(STATE_KEY, state)
        return resp

    @auth_app.get("/callback", response_class=PlainTextResponse)
    async def callback(request: Request, state: Optional[str] = None, code: Optional[str] = None):
        cookie = request.cookies.get(STATE_KEY)
        if not state or not cookie or cookie != state:
            raise HTTPException(status_code=400, detail="Could not validate request")
        if not code:
            raise HTTPException(status_code=400, detail="Missing required query parameter: code")
        try:
            await auth.complete(code)
        except Exception as e:
            logger.error(f"Failed to retrieve token from Spotify: {e}")
            raise HTTPException(status_code=400, detail="Failed to retrieve token from Spotify")
        return f"Success! Wrote token file to {auth.token_path}"

    return auth_app
