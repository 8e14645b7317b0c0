from __future__ import annotations

import time
from typing import Callable
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .models import ActionResponse, ErrorResponse
from .store import INDEX_NAN, TTL_NAN, VALUE_REQUIRED, KeyStore, Result, StoreError

_ERROR_STATUS = {
    100: 404,
    101: 412,
    102: 403,
    104: 403,
    105: 412,
    107: 403,
    108: 403,
}


def _status_for(error_code: int) -> int:
    if error_code in _ERROR_STATUS:
        return _ERROR_STATUS[error_code]
    if 200 <= error_code < 300 or error_code in (400, 401):
        return 400
    return 500


def _int_or_none(raw: str | None, code: tuple[int, str], store: KeyStore) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise StoreError(code, raw, store.index) from None


def _flag(raw: str | None) -> bool:
    return raw == "true"


def create_app(history_size: int = 1000, clock: Callable[[], float] = time.time) -> FastAPI:
    store = KeyStore(history_size=history_size, clock=clock)

    app = FastAPI(title="fake-etcd")
    app.state.store = store

    def respond(result: Result, status_code: int = 200) -> JSONResponse:
        payload = ActionResponse(action=result.action, node=result.node, prev_node=result.prev_node)
        return JSONResponse(
            payload.model_dump(by_alias=True, exclude_none=True),
            status_code=status_code,
            headers={"X-Etcd-Index": str(store.index)},
        )

    async def read_form(request: Request) -> dict[str, str]:
        body = (await request.body()).decode("utf-8")
        form = dict(parse_qsl(body, keep_blank_values=True))
        # Parameters may also come in the query string.
        for name, value in request.query_params.items():
            form.setdefault(name, value)
        return form

    @app.exception_handler(StoreError)
    async def store_error(request: Request, exc: StoreError):
        payload = ErrorResponse(errorCode=exc.error_code, message=exc.message, cause=exc.cause, index=exc.index)
        return JSONResponse(
            payload.model_dump(),
            status_code=_status_for(exc.error_code),
            headers={"X-Etcd-Index": str(exc.index)},
        )

    @app.get("/health")
    async def health():
        return {"health": "true"}

    @app.get("/v2/keys/{key:path}")
    async def get_key(key: str, request: Request):
        params = request.query_params
        key = "/" + key
        recursive = _flag(params.get("recursive"))

        if _flag(params.get("wait")):
            wait_index = _int_or_none(params.get("waitIndex"), INDEX_NAN, store)
            event = await store.watch(key, recursive=recursive, wait_index=wait_index)
            return respond(Result(event.action, event.node, event.prev_node))

        result = await store.get(key, recursive=recursive, sort=_flag(params.get("sorted")))
        return respond(result)

    @app.put("/v2/keys/{key:path}")
    async def put_key(key: str, request: Request):
        form = await read_form(request)
        ttl = _int_or_none(form.get("ttl"), TTL_NAN, store)
        as_dir = _flag(form.get("dir"))
        if not as_dir and "value" not in form:
            raise StoreError(VALUE_REQUIRED, "Update", store.index)

        result = await store.set("/" + key, form.get("value"), ttl=ttl, as_dir=as_dir)
        return respond(result, 201 if result.created else 200)

    @app.post("/v2/keys/{key:path}")
    async def post_key(key: str, request: Request):
        form = await read_form(request)
        ttl = _int_or_none(form.get("ttl"), TTL_NAN, store)
        if "value" not in form:
            raise StoreError(VALUE_REQUIRED, "Create", store.index)

        result = await store.create_in_order("/" + key, form["value"], ttl=ttl)
        return respond(result, 201)

    @app.delete("/v2/keys/{key:path}")
    async def delete_key(key: str, request: Request):
        params = request.query_params
        result = await store.delete(
            "/" + key,
            as_dir=_flag(params.get("dir")),
            recursive=_flag(params.get("recursive")),
        )
        return respond(result)

    return app


app = create_app()
