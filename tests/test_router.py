from typing import Any

import pytest
from conftest import MockHandler, RecordingMiddleware

from hookmux.context import http_route, path_params, request_context
from hookmux.errors import InvalidMiddlewareClassError, InvalidPathError, PatternError
from hookmux.http import Request, Response
from hookmux.middleware.base import Decision, Middleware
from hookmux.registry import Registry
from hookmux.router import OPTIONS_FORMAT, Router


# --- HTTP method tests --------------------------------------------------------
@pytest.mark.parametrize(
    "method_name", ["get", "post", "put", "patch", "delete", "head", "options"]
)
def test_router_http_methods(method_name: str) -> None:
    """Each per-method helper registers and matches only its own method."""
    handler = MockHandler(result=method_name)
    router = Router()
    getattr(router, method_name)("/test", handler)

    assert router.route("/test", method_name.upper()) == method_name
    assert len(handler.calls) == 1
    other = "post" if method_name != "post" else "get"
    with pytest.raises(InvalidPathError):
        router.route("/test", other)


def test_add_route_multiple_methods_share_template() -> None:
    get_handler = MockHandler(result="get")
    post_handler = MockHandler(result="post")
    router = Router()
    routes = router.add_route(
        "/items/{id}", patterns={"id": "num"}, post=post_handler, get=get_handler
    )

    assert [r.method for r in routes] == ["get", "post"]
    assert routes[0].template is routes[1].template
    assert router.route("/items/1", "GET") == "get"
    assert router.route("/items/1", "POST") == "post"


def test_add_route_rejects_unknown_method_keyword() -> None:
    router = Router()
    with pytest.raises(TypeError, match="unsupported method"):
        router.add_route("/x", fetch=MockHandler())


def test_add_route_requires_a_handler() -> None:
    with pytest.raises(TypeError, match="at least one"):
        Router().add_route("/x")


def test_malformed_pattern_fails_registration() -> None:
    router = Router()
    with pytest.raises(PatternError):
        router.get("/users/{id", MockHandler())
    with pytest.raises(PatternError):
        router.get("/users/{id}", MockHandler(), patterns={"uid": "num"})
    assert router.registry.routes() == []


# --- Path params tests --------------------------------------------------------
def test_path_params_reach_handler() -> None:
    handler = MockHandler()
    router = Router()
    router.get("/user/{id}/transaction/{tx}", handler)

    router.route("/user/1/transaction/2", "GET")
    assert handler.calls[0].params == {"id": "1", "tx": "2"}


def test_context_published_during_dispatch_only() -> None:
    seen: dict[str, Any] = {}

    def handler(request: Request, response: Response) -> None:
        ctx = request_context.get()
        seen["ctx"] = ctx
        seen["params"] = path_params.get()
        seen["route"] = http_route.get()

    router = Router()
    router.get("/user/{id}", handler)
    router.route("/user/42", "GET")

    assert seen["ctx"].pattern == "/user/{id}"
    assert seen["ctx"].http_method == "get"
    assert seen["ctx"].handler is handler
    assert seen["params"] == {"id": "42"}
    assert seen["route"] == "/user/{id}"
    assert request_context.get(None) is None


# --- precedence and overwrite -------------------------------------------------
def test_first_registered_matching_template_wins() -> None:
    r1 = MockHandler(result="r1")
    r2 = MockHandler(result="r2")
    router = Router()
    router.get("/files/{name}", r1)
    router.get("/files/{anything}", r2)

    assert router.route("/files/readme", "GET") == "r1"
    assert r2.calls == []


def test_more_specific_first_must_be_registered_first() -> None:
    router = Router()
    router.get("/users/me", MockHandler(result="me"))
    router.get("/users/{id}", MockHandler(result="id"))
    assert router.route("/users/me", "GET") == "me"
    assert router.route("/users/7", "GET") == "id"


def test_reregistration_invokes_only_second_handler() -> None:
    first = MockHandler(result="first")
    second = MockHandler(result="second")
    router = Router()
    router.get("/dup", first)
    router.get("/dup", second)

    assert router.route("/dup", "GET") == "second"
    assert first.calls == []
    assert len(second.calls) == 1


# --- middleware phases --------------------------------------------------------
def test_preprocess_runs_once_per_middleware_regardless_of_outcome() -> None:
    log: list[str] = []
    router = Router()
    router.attach(RecordingMiddleware, "a", log)
    router.attach(RecordingMiddleware, "b", log)
    router.get("/ok", MockHandler())

    router.route("/ok", "GET")
    assert log == ["a:preprocess", "b:preprocess", "a:preroute", "b:preroute"]

    log.clear()
    with pytest.raises(InvalidPathError):
        router.route("/missing", "GET")
    assert log == ["a:preprocess", "b:preprocess"]


def test_preprocess_receives_router() -> None:
    seen: list[Any] = []

    class Spy(Middleware):
        def preprocess(self, router: Any) -> None:
            seen.append(router)

    router = Router()
    router.attach(Spy)
    router.get("/", MockHandler())
    router.route("/", "GET")
    assert seen == [router]


@pytest.mark.parametrize("abort", [False, Decision.ABORT])
def test_preroute_abort_skips_later_hooks_and_handler(abort: Any) -> None:
    log: list[str] = []
    handler = MockHandler()
    router = Router()
    router.attach(RecordingMiddleware, "a", log)
    router.attach(RecordingMiddleware, "b", log, result=abort)
    router.attach(RecordingMiddleware, "c", log)
    router.get("/x", handler)

    assert router.route("/x", "GET") is Decision.ABORT
    assert handler.calls == []
    assert log == [
        "a:preprocess",
        "b:preprocess",
        "c:preprocess",
        "a:preroute",
        "b:preroute",
    ]


@pytest.mark.parametrize("result", [None, True, 0, "", Decision.CONTINUE])
def test_non_abort_results_continue(result: Any) -> None:
    handler = MockHandler(result="done")
    router = Router()
    router.attach(RecordingMiddleware, "a", [], result=result)
    router.get("/x", handler)
    assert router.route("/x", "GET") == "done"


def test_gated_off_preroute_is_skipped_entirely() -> None:
    log: list[str] = []
    handler = MockHandler(result="ok")
    router = Router()
    blocker = router.attach(RecordingMiddleware, "blocker", log, result=False)
    blocker.restrict("preroute", "post", "*")
    router.get("/x", handler)

    assert router.route("/x", "GET") == "ok"
    assert log == ["blocker:preprocess"]


def test_preroute_can_modify_request_and_response() -> None:
    class Tagger(Middleware):
        def preroute(self, request: Request, response: Response) -> None:
            request.params["tagged"] = "yes"
            response.set_header("X-Tag", "1")

    def handler(request: Request, response: Response) -> tuple[str | None, str | None]:
        return request.get_param("tagged"), response.get_header("x-tag")

    router = Router()
    router.attach(Tagger)
    router.get("/", handler)
    assert router.route("/", "GET") == ("yes", "1")


def test_invoke_callback_can_be_overridden() -> None:
    class Wrapping(Router):
        def invoke_callback(self, callback: Any, params: Any, **kwargs: Any) -> Any:
            return ("wrapped", super().invoke_callback(callback, params, **kwargs))

    router = Wrapping()
    router.get("/", MockHandler(result="inner"))
    assert router.route("/", "GET") == ("wrapped", "inner")


def test_transport_request_and_response_are_used() -> None:
    request = Request(method="GET", path="/u/9")
    response = Response(request)

    def handler(req: Request, res: Response) -> None:
        res.add("hi")
        res.send(201)

    router = Router()
    router.get("/u/{id}", handler)
    router.route("/u/9", "GET", request=request, response=response)

    assert request.params == {"id": "9"}
    assert response.status == 201
    assert response.body_bytes() == b"hi"


# --- OPTIONS fallback ---------------------------------------------------------
def test_options_without_routes_announces_all_methods() -> None:
    response = Response()
    router = Router()
    assert router.route("/nothing/here", "OPTIONS", response=response) is True
    assert response.sent is True
    assert response.status == 200
    assert response.format == OPTIONS_FORMAT
    assert response.get_header("Allow") == "GET,POST,PUT,PATCH,DELETE,HEAD,OPTIONS"


def test_options_fallback_is_case_insensitive() -> None:
    assert Router().route("/x", "options") is True


def test_options_fallback_ignores_preroute_aborts() -> None:
    log: list[str] = []
    router = Router()
    router.attach(RecordingMiddleware, "a", log, result=False)
    router.attach(RecordingMiddleware, "b", log, result=Decision.ABORT)

    assert router.route("/x", "OPTIONS") is True
    assert log == ["a:preprocess", "b:preprocess", "a:preroute", "b:preroute"]


def test_explicit_options_route_takes_precedence() -> None:
    router = Router()
    router.options("/x", MockHandler(result="custom"))
    assert router.route("/x", "OPTIONS") == "custom"
    assert router.route("/y", "OPTIONS") is True


# --- shared registry ----------------------------------------------------------
def test_routers_sharing_a_registry_share_routes_and_middleware() -> None:
    log: list[str] = []
    registry = Registry()
    a = Router(registry)
    b = Router(registry)
    a.attach(RecordingMiddleware, "m", log)
    a.get("/shared", MockHandler(result="shared"))

    assert b.route("/shared", "GET") == "shared"
    assert log == ["m:preprocess", "m:preroute"]


def test_routers_are_isolated_by_default() -> None:
    a = Router()
    b = Router()
    a.get("/only-a", MockHandler())
    a.attach(Middleware)
    with pytest.raises(InvalidPathError):
        b.route("/only-a", "GET")
    assert len(b.registry.middleware) == 0


# --- scenarios ----------------------------------------------------------------
def test_scenario_digit_constrained_param() -> None:
    handler = MockHandler()
    router = Router()
    router.get("/users/{id}", handler, patterns={"id": r"\d+"})

    router.route("/users/42", "GET")
    assert handler.calls[0].params == {"id": "42"}

    with pytest.raises(InvalidPathError) as exc_info:
        router.route("/users/abc", "GET")
    assert exc_info.value.method == "get"
    assert exc_info.value.uri == "/users/abc"
    assert len(handler.calls) == 1


def test_scenario_options_announces_static_set_not_registered_subset() -> None:
    response = Response()
    router = Router()
    router.post("/items", MockHandler())
    router.get("/items", MockHandler())

    assert router.route("/items", "OPTIONS", response=response) is True
    assert response.get_header("Allow") == "GET,POST,PUT,PATCH,DELETE,HEAD,OPTIONS"


def test_scenario_admin_guard_aborts_without_error() -> None:
    class AdminGuard(Middleware):
        def preroute(self, request: Request, response: Response) -> Any:
            if request_context.get().pattern.startswith("/admin/"):
                return False
            return None

    handler = MockHandler()
    router = Router()
    router.attach(AdminGuard)
    router.get("/admin/{action}", handler)

    result = router.route("/admin/dash", "GET")
    assert result is Decision.ABORT
    assert handler.calls == []


def test_scenario_invalid_middleware_class() -> None:
    class NotMiddleware:
        pass

    router = Router()
    with pytest.raises(InvalidMiddlewareClassError):
        router.attach(NotMiddleware)  # type: ignore[arg-type]
    assert len(router.registry.middleware) == 0
