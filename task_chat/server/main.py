"""ASGI entrypoint: FastAPI for the HTTP routes, Socket.IO for the live chat."""
from typing import Optional

import socketio
import uvicorn
from fastapi import FastAPI

from . import auth, chat, messages, users
from .config import CHAT_IDENTITY_MODE, CORS_ALLOWED_ORIGINS, HOST, PORT, SOCKETIO_PATH
from .database import Base, engine
from .gateway import ChatGateway, handshake_user_id, token_identity
from .logging_config import configure_logging
from .relay import MessageStore

logger = configure_logging()


def build_sio() -> socketio.AsyncServer:
    origins = CORS_ALLOWED_ORIGINS if CORS_ALLOWED_ORIGINS == "*" else CORS_ALLOWED_ORIGINS.split(",")
    # The handshake is accepted before the connect handler runs so the presence
    # broadcast also reaches the client that just joined.
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=origins,
        always_connect=True,
        logger=False,
        engineio_logger=False,
    )


def create_app(
    sio: Optional[socketio.AsyncServer] = None,
    store: Optional[MessageStore] = None,
    identity_mode: str = CHAT_IDENTITY_MODE,
) -> FastAPI:
    sio = sio if sio is not None else build_sio()
    if identity_mode == "token":
        identify = token_identity(auth.resolve_token)
    elif identity_mode == "handshake":
        identify = handshake_user_id
    else:
        raise ValueError(f"Unknown CHAT_IDENTITY_MODE: {identity_mode!r}")

    app = FastAPI(title="Task Chat Server", version="1.0.0")
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(messages.router)
    app.include_router(chat.router)
    app.state.sio = sio
    app.state.gateway = ChatGateway(sio, store=store, identify=identify).attach()

    @app.get("/")
    def root():
        return {"status": "ok"}

    logger.info("APP_READY identity_mode=%s socketio_path=%s", identity_mode, SOCKETIO_PATH)
    return app


Base.metadata.create_all(bind=engine)

app = create_app()
application = socketio.ASGIApp(app.state.sio, other_asgi_app=app, socketio_path=SOCKETIO_PATH)


def run() -> None:
    uvicorn.run("task_chat.server.main:application", host=HOST, port=PORT, reload=False)


if __name__ == "__main__":
    run()
