"""HTTP surface: health, status and the GitHub webhook."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging

from fastapi import FastAPI, HTTPException, Request, Response

from benchwatch.pipeline.engine import Engine

logger = logging.getLogger(__name__)


def signature_matches(secret: str, body: bytes, header: str | None) -> bool:
    if not header or not header.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, header[len("sha256="):])


def create_app(engine: Engine, webhook_secret: str | None = None) -> FastAPI:
    app = FastAPI(title="benchwatch")
    app.state.engine = engine

    @app.get("/health")
    def health_check() -> dict:
        return {"status": "ok"}

    @app.get("/status")
    def status() -> dict:
        pipeline = engine.pipeline
        outcome = pipeline.last_outcome
        return {
            "repo": str(pipeline.settings.repo),
            "last_commit": outcome.commit.sha if outcome else None,
            "last_result": str(outcome.result_path) if outcome and outcome.result_path else None,
            "notified": outcome.notified if outcome else False,
            "last_error": pipeline.last_error,
        }

    @app.post("/github")
    async def github_webhook(request: Request, response: Response) -> dict:
        body = await request.body()
        if webhook_secret and not signature_matches(
            webhook_secret, body, request.headers.get("X-Hub-Signature-256")
        ):
            raise HTTPException(status_code=401, detail="Invalid webhook signature")
        event = request.headers.get("X-GitHub-Event", "")
        if event == "ping":
            return {"status": "pong"}
        if event != "push":
            return {"status": "ignored", "event": event}
        try:
            payload = json.loads(body or b"{}")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Malformed JSON payload") from exc
        ref = payload.get("ref", "") if isinstance(payload, dict) else ""
        repository = payload.get("repository") if isinstance(payload, dict) else None
        default_branch = repository.get("default_branch", "") if isinstance(repository, dict) else ""
        if default_branch and ref != f"refs/heads/{default_branch}":
            logger.debug("Ignoring push to %s", ref)
            return {"status": "ignored", "ref": ref}
        queued = engine.trigger(f"push {ref}".strip())
        response.status_code = 202
        return {"status": "queued" if queued else "pending"}

    return app
