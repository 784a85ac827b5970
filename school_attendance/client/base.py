from typing import Any, Optional

import httpx


class ApiClient:
    """
    Thin wrapper over one ``httpx.Client`` pointed at the API base (``.../api``).

    Every successful body is ``{"success": true, "data": <payload>}``;
    ``unwrap`` is the only place that knows it. There is no retry, caching
    or error translation: ``httpx`` exceptions reach the caller unchanged.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._http = httpx.Client(base_url=base_url, transport=transport)
        if token:
            self.set_token(token)

    def set_token(self, token: Optional[str]) -> None:
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"
        else:
            self._http.headers.pop("Authorization", None)

    @staticmethod
    def unwrap(response: httpx.Response) -> Any:
        response.raise_for_status()
        return response.json()["data"]

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self._http.request(method, path, **kwargs)

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.unwrap(self.request("GET", path, **kwargs))

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.unwrap(self.request("POST", path, **kwargs))

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.unwrap(self.request("PUT", path, **kwargs))

    def delete(self, path: str, **kwargs: Any) -> None:
        self.request("DELETE", path, **kwargs).raise_for_status()

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
