"""Route class recording the matched path template for request metrics."""

from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.routing import APIRoute


class TemplatedRoute(APIRoute):
    """
    APIRoute that stores its path template on `request.state.route_path`.

    The HTTP middleware reads it after the response so metrics are labelled
    with `/auth/{email}` rather than the concrete path, whatever way the
    router tree is nested.
    """

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        path = self.path

        async def templated_route_handler(request: Request) -> Response:
            request.state.route_path = path
            return await handler(request)

        return templated_route_handler


def route_template(request: Request) -> Optional[str]:
    """Path template recorded for a request, None when no route matched."""
    return getattr(request.state, "route_path", None)
