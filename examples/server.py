# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "hookmux",
# ]
#
# [tool.uv.sources]
# hookmux = { path = "../", editable = true }
# ///
"""WSGI server demo.

Fully functional web server using wsgiref + hookmux Router, with an admin
guard and CORS attached as middleware.
"""

import json
import logging
import sqlite3
from wsgiref.simple_server import make_server

from hookmux import Decision, Middleware, Request, Response, Router, request_context
from hookmux.middleware import CORSConfig, CORSMiddleware
from hookmux.wsgi import WSGIApp

ADDRESS = "127.0.0.1"
PORT = 8000

_db = sqlite3.connect(":memory:")
_db.cursor().executescript("""
CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
""")


class AdminGuard(Middleware):
    """Rejects /admin/* unless the request carries the admin token."""

    def __init__(self, token: str) -> None:
        super().__init__()
        self.token = token
        self.restrict("preroute", "*", "/admin/{action}")

    def preroute(self, request: Request, response: Response) -> Decision:
        if request.headers.get("x-admin-token") == self.token:
            return Decision.CONTINUE
        response.set_format("text")
        response.add("forbidden")
        response.send(403)
        return Decision.ABORT


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)

    router = Router()
    router.attach(CORSMiddleware, CORSConfig(allow_origins=("*",)))
    router.attach(AdminGuard, "secret")

    router.get("/", home)
    router.get("/user", list_users)
    router.post("/user", create_user)
    router.add_route(
        "/user/{id}",
        patterns={"id": "num"},
        get=get_user,
        delete=delete_user,
    )
    router.get("/admin/{action}", admin)

    with make_server(ADDRESS, PORT, WSGIApp(router)) as server:
        logging.info("serving on http://%s:%d", ADDRESS, PORT)
        server.serve_forever()


def home(request: Request, response: Response) -> str:
    response.set_format("text")
    return "Welcome home"


def list_users(request: Request, response: Response) -> str:
    rows = _db.execute("SELECT id, name FROM user").fetchall()
    response.set_format("json")
    return json.dumps([{"id": r[0], "name": r[1]} for r in rows])


def create_user(request: Request, response: Response) -> None:
    cur = _db.execute("INSERT INTO user (name) VALUES (?)", ("anonymous",))
    response.add(json.dumps({"id": cur.lastrowid}))
    response.send(201, "json")


def get_user(request: Request, response: Response) -> str | None:
    row = _db.execute(
        "SELECT id, name FROM user WHERE id = ?", (int(request.params["id"]),)
    ).fetchone()
    if row is None:
        response.send(404, "text")
        return None
    response.set_format("json")
    return json.dumps({"id": row[0], "name": row[1]})


def delete_user(request: Request, response: Response) -> None:
    _db.execute("DELETE FROM user WHERE id = ?", (int(request.params["id"]),))
    response.send(204)


def admin(request: Request, response: Response) -> str:
    ctx = request_context.get()
    response.set_format("text")
    return f"admin action {ctx.params['action']}"


if __name__ == "__main__":
    main()
