import asyncio
import contextlib
import functools
import logging
from typing import Any, AsyncIterator, Awaitable, Callable
from zoneinfo import ZoneInfo

from databases import Database
from rich.logging import RichHandler
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from app import config
from domain.errors import (
    AlreadyExists,
    EmptyPool,
    LunchError,
    NothingToRate,
    NotFound,
    RetryLimitReached,
    StoreUnavailable,
)
from domain.feed import ChangeFeed
from domain.models import Kind
from domain.repository import (
    DatabaseRoomStore,
    MemoryRoomStore,
    RoomRepository,
    RoomStore,
)
from domain.services import LunchRoom, new_room_id


logger = logging.getLogger(__name__)


CONFIG = config.Config()


# First match wins.
ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (AlreadyExists, 409),
    (NothingToRate, 409),
    (RetryLimitReached, 429),
    (EmptyPool, 422),
    (NotFound, 404),
    (StoreUnavailable, 503),
    (ValueError, 400),
]


COLLECTIONS = {"places": Kind.place, "menus": Kind.menu}


type JSON = dict[str, Any]


def error_status(exc: Exception) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


def aJSONResponse(route: Callable[..., Awaitable[JSON | tuple[JSON, int]]]):
    @functools.wraps(route)
    async def wrapper(request: Request) -> JSONResponse:
        try:
            resp = await route(request)
        except (LunchError, ValueError) as e:
            status = error_status(e)
            logger.info("%s %s -> %d %r", request.method, request.url.path, status, e)
            return JSONResponse(
                {"error": type(e).__name__, "detail": str(e)}, status_code=status
            )
        if not isinstance(resp, tuple):
            body, code = resp, 200
        else:
            body, code = resp
        return JSONResponse(body, status_code=code)

    return wrapper


async def json_body(request: Request) -> JSON:
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Expected a JSON object.")
    return body


def field(body: JSON, name: str) -> Any:
    if name not in body:
        raise ValueError(f"Missing field: {name}")
    return body[name]


def text_field(body: JSON, name: str) -> str:
    value = field(body, name)
    if not isinstance(value, str):
        raise ValueError(f"Field {name} must be a string.")
    return value


def menu_names(body: JSON) -> list[str] | str:
    """`menus` is either comma separated text or a list of names."""
    value = body.get("menus") or ""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    raise ValueError("Field menus must be a string or a list of strings.")


def lunch_room(request: Request) -> LunchRoom:
    state = request.app.state
    return LunchRoom(
        request.path_params["room_id"],
        repository=state.repository,
        feed=state.feed,
        tz=state.tz,
        max_attempts=state.max_attempts,
    )


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


@aJSONResponse
async def create_room(request: Request) -> tuple[JSON, int]:
    return {"room_id": new_room_id()}, 201


@aJSONResponse
async def room_detail(request: Request) -> JSON:
    room = await lunch_room(request).load()
    return room.to_dict()


@aJSONResponse
async def room_name(request: Request) -> JSON:
    body = await json_body(request)
    room = lunch_room(request)
    await room.set_room_name(text_field(body, "name"))
    return {"room_name": room.room_name}


@aJSONResponse
async def places(request: Request) -> tuple[JSON, int]:
    body = await json_body(request)
    room = lunch_room(request)
    id = await room.add_place_with_menus(
        text_field(body, "name"), menu_names(body)
    )
    return {"id": id}, 201


@aJSONResponse
async def place_detail(request: Request) -> JSON:
    id = request.path_params["id"]
    room = lunch_room(request)
    match request.method.lower():
        case "patch":
            body = await json_body(request)
            await room.rename_place(id, text_field(body, "name"))
        case "delete":
            await room.delete_place(id)
        case _:
            raise ValueError("Unsupported method.")
    return {"id": id}


@aJSONResponse
async def place_menus(request: Request) -> tuple[JSON, int]:
    body = await json_body(request)
    room = lunch_room(request)
    id = await room.add_menu(request.path_params["id"], text_field(body, "name"))
    return {"id": id}, 201


@aJSONResponse
async def menu_detail(request: Request) -> JSON:
    id = request.path_params["id"]
    room = lunch_room(request)
    match request.method.lower():
        case "patch":
            body = await json_body(request)
            await room.rename_menu(id, text_field(body, "name"))
        case "delete":
            await room.delete_menu(id)
        case _:
            raise ValueError("Unsupported method.")
    return {"id": id}


@aJSONResponse
async def toggle(request: Request) -> JSON:
    collection = request.path_params["collection"]
    if collection not in COLLECTIONS:
        raise NotFound(collection)
    id = request.path_params["id"]
    is_active = await lunch_room(request).toggle_active(COLLECTIONS[collection], id)
    return {"id": id, "is_active": is_active}


@aJSONResponse
async def pick(request: Request) -> JSON:
    selection = await lunch_room(request).pick_lunch()
    return selection.to_dict()


@aJSONResponse
async def ratings(request: Request) -> tuple[JSON, int]:
    body = await json_body(request)
    room = lunch_room(request)
    await room.submit_rating(field(body, "score"))
    pick = room.current_pick
    average = None if pick is None else room.average_rating(pick.kind, pick.item_id)
    return {"average": average}, 201


@aJSONResponse
async def rating_detail(request: Request) -> JSON:
    room = await lunch_room(request).load()
    average = room.average_rating(
        request.path_params["kind"], request.path_params["item_id"]
    )
    return {"average": average}


async def changes(ws: WebSocket) -> None:
    room_id = ws.path_params["room_id"]
    feed: ChangeFeed = ws.app.state.feed
    async with feed.subscribe(room_id) as queue:
        await ws.accept()
        receive = asyncio.create_task(ws.receive())
        get = asyncio.create_task(queue.get())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {receive, get}, return_when=asyncio.FIRST_COMPLETED
                )
                if receive in done:
                    if receive.result()["type"] == "websocket.disconnect":
                        break
                    # Clients have nothing to say; drop it.
                    receive = asyncio.create_task(ws.receive())
                if get in done:
                    await ws.send_json(get.result())
                    get = asyncio.create_task(queue.get())
        except WebSocketDisconnect:
            logger.debug("Change feed for %s closed mid-send", room_id)
        finally:
            receive.cancel()
            get.cancel()
    logger.debug("Change feed for %s disconnected", room_id)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def create_app(cfg: config.Config = CONFIG, store: RoomStore | None = None) -> Starlette:
    configure_logging(cfg.log_level)

    db_store: DatabaseRoomStore | None = None
    if store is None:
        match cfg.store:
            case config.StoreBackend.database:
                store = db_store = DatabaseRoomStore(Database(cfg.db_url))
            case config.StoreBackend.memory:
                store = MemoryRoomStore()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if db_store is not None:
            await db_store.db.connect()
            await db_store.create()
            logger.info("Room store ready at %s", cfg.db_url)
        yield
        if db_store is not None:
            await db_store.db.disconnect()

    app = Starlette(
        debug=True if cfg.env == config.Env.local else False,
        routes=[
            Route("/health", health),
            Route("/rooms", create_room, methods=["POST"]),
            Route("/rooms/{room_id}", room_detail),
            Route("/rooms/{room_id}/name", room_name, methods=["PUT"]),
            Route("/rooms/{room_id}/places", places, methods=["POST"]),
            Route(
                "/rooms/{room_id}/places/{id}",
                place_detail,
                methods=["PATCH", "DELETE"],
            ),
            Route("/rooms/{room_id}/places/{id}/menus", place_menus, methods=["POST"]),
            Route(
                "/rooms/{room_id}/menus/{id}",
                menu_detail,
                methods=["PATCH", "DELETE"],
            ),
            Route(
                "/rooms/{room_id}/{collection}/{id}/toggle", toggle, methods=["POST"]
            ),
            Route("/rooms/{room_id}/pick", pick, methods=["POST"]),
            Route("/rooms/{room_id}/ratings", ratings, methods=["POST"]),
            Route("/rooms/{room_id}/ratings/{kind}/{item_id}", rating_detail),
            WebSocketRoute("/rooms/{room_id}/changes", changes),
        ],
        lifespan=lifespan,
    )

    app.state.repository = RoomRepository(store)
    app.state.feed = ChangeFeed()
    app.state.tz = ZoneInfo(cfg.timezone)
    app.state.max_attempts = cfg.max_attempts
    return app


app = create_app()
