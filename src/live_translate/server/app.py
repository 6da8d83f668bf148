import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError

from live_translate.adapters.browser_audio import BrowserCapture
from live_translate.adapters.preferences import PreferencesStore
from live_translate.config import LiveTranslateConfig
from live_translate.domain.errors import (
    ConfigurationError,
    LiveTranslateError,
    SessionBusyError,
    UpstreamContractError,
    UpstreamTransportError,
)
from live_translate.domain.session import LiveSession
from live_translate.factory import (
    create_preferences,
    create_session,
    create_token_minter,
    create_translator,
)
from live_translate.ports.transcriber import TokenMinterPort
from live_translate.ports.translator import TranslatorPort
from live_translate.server.page import INDEX_HTML
from live_translate.server.schemas import (
    PreferencesBody,
    TokenResponse,
    TranslateBody,
    TranslateResponse,
)

logger = logging.getLogger(__name__)


def _error_body(message: str, **extra) -> dict:
    body = {"error": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(_error_body(str(exc)), status_code=500)

    @app.exception_handler(UpstreamTransportError)
    async def upstream_transport_error(request: Request, exc: UpstreamTransportError) -> JSONResponse:
        return JSONResponse(
            _error_body(str(exc), status=exc.status, details=exc.details),
            status_code=502,
        )

    @app.exception_handler(UpstreamContractError)
    async def upstream_contract_error(request: Request, exc: UpstreamContractError) -> JSONResponse:
        return JSONResponse(_error_body(str(exc), raw=exc.raw), status_code=502)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            _error_body("Invalid request body.", details=str(exc.errors())),
            status_code=400,
        )

    @app.exception_handler(SessionBusyError)
    async def session_busy(request: Request, exc: SessionBusyError) -> JSONResponse:
        return JSONResponse(_error_body(str(exc)), status_code=409)

    @app.exception_handler(LiveTranslateError)
    async def live_translate_error(request: Request, exc: LiveTranslateError) -> JSONResponse:
        return JSONResponse(_error_body(str(exc) or "Request failed."), status_code=500)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(_error_body("Internal server error."), status_code=500)


def create_app(
    config: LiveTranslateConfig | None = None,
    session: LiveSession | None = None,
    preferences: PreferencesStore | None = None,
    browser_capture: BrowserCapture | None = None,
    token_minter_factory: Callable[[str], TokenMinterPort] | None = None,
    translator_factory: Callable[[str], TranslatorPort] | None = None,
) -> FastAPI:
    config = config or LiveTranslateConfig()
    preferences = preferences or create_preferences(config)
    browser_capture = browser_capture or BrowserCapture()
    session = session or create_session(config, preferences, browser_capture)
    token_minter_factory = token_minter_factory or (lambda key: create_token_minter(config, key))
    translator_factory = translator_factory or (lambda key: create_translator(config, key))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await session.disconnect()

    app = FastAPI(title="Live Translate", lifespan=lifespan)
    app.state.config = config
    app.state.session = session
    app.state.preferences = preferences
    app.state.browser_capture = browser_capture
    _install_error_handlers(app)

    @app.get("/")
    async def index() -> HTMLResponse:
        return HTMLResponse(INDEX_HTML)

    @app.api_route("/api/scribe-token", methods=["GET", "POST"])
    async def scribe_token(request: Request) -> TokenResponse:
        header_key = (request.headers.get("x-elevenlabs-api-key") or "").strip()
        api_key = config.elevenlabs_key() or header_key
        if not api_key:
            raise ConfigurationError("Missing ELEVENLABS_API_KEY.")
        token = await token_minter_factory(api_key).mint()
        return TokenResponse(token=token)

    @app.post("/api/translate")
    async def translate(request: Request):
        header_key = (request.headers.get("x-openai-api-key") or "").strip()
        api_key = config.openai_key() or header_key
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY.")

        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(_error_body("Invalid JSON body."), status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse(_error_body("Invalid JSON body."), status_code=400)
        try:
            body = TranslateBody.model_validate(payload)
        except ValidationError as exc:
            return JSONResponse(
                _error_body("Invalid request body.", details=str(exc)),
                status_code=400,
            )

        result = await translator_factory(api_key).translate(body.to_request())
        return TranslateResponse.from_result(result)

    @app.get("/api/session")
    async def session_snapshot() -> dict:
        return session.snapshot()

    @app.post("/api/session/connect")
    async def session_connect() -> dict:
        await session.connect()
        return session.snapshot()

    @app.post("/api/session/disconnect")
    async def session_disconnect() -> dict:
        await session.disconnect()
        return session.snapshot()

    @app.post("/api/session/reset")
    async def session_reset() -> dict:
        session.reset()
        return session.snapshot()

    @app.post("/api/session/clear-summary")
    async def session_clear_summary() -> dict:
        session.clear_summary()
        return session.snapshot()

    @app.get("/api/preferences")
    async def get_preferences() -> dict:
        return preferences.load().to_dict()

    @app.put("/api/preferences")
    async def put_preferences(body: PreferencesBody) -> dict:
        changes = body.changes()
        current = preferences.load()
        session.configure(
            changes.get("input_language", current.input_language),
            changes.get("output_language", current.output_language),
        )
        return preferences.update(**changes).to_dict()

    async def forward_snapshots(websocket: WebSocket, queue: asyncio.Queue[dict]) -> None:
        try:
            while True:
                snapshot = await queue.get()
                await websocket.send_json({"type": "state", **snapshot})
        except (WebSocketDisconnect, RuntimeError):
            return

    async def handle_control(websocket: WebSocket, text: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            message = None
        if not isinstance(message, dict):
            await websocket.send_json({"type": "error", "message": "control messages must be JSON objects"})
            return

        kind = message.get("type")
        if kind == "capture.start":
            try:
                browser_capture.set_sample_rate(int(message.get("sampleRate") or 0))
            except (TypeError, ValueError) as exc:
                await websocket.send_json({"type": "error", "message": str(exc)})
        elif kind == "capture.stop":
            browser_capture.end()
        elif kind == "capture.error":
            error = str(message.get("error") or "Microphone capture failed.")
            if session.is_busy:
                browser_capture.fail(error)
            else:
                session.report_error(error)
        else:
            logger.debug("Ignoring control message: %s", kind)

    @app.websocket("/ws")
    async def ws_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = session.subscribe()
        sender = asyncio.create_task(forward_snapshots(websocket, queue))
        peer = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        logger.info("Page connected (%s)", peer)

        try:
            while True:
                msg = await websocket.receive()
                if msg.get("type") == "websocket.disconnect":
                    break
                raw = msg.get("bytes")
                if raw is not None:
                    browser_capture.feed(raw)
                    continue
                text = msg.get("text")
                if text:
                    await handle_control(websocket, text)
        except WebSocketDisconnect:
            pass
        finally:
            session.unsubscribe(queue)
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            logger.info("Page disconnected (%s)", peer)

    return app
