from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .base import ErrorKind, FetchResult, HttpClient
from ..entities import WeatherSnapshot


class HealthStatus(BaseModel):
    """Body of ``/api/system/health``."""

    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    realtime: Optional[str] = None
    database: Optional[str] = None

    @field_validator("status", "realtime", "database", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


class AcuparseClient(HttpClient):
    health_path = "/api/system/health"
    dashboard_path = "/api/v1/json/dashboard/?main"

    def __init__(self, host: str, port: int = 80, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.host = host.strip()
        self.port = port
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def health(self) -> Tuple[FetchResult, Optional[HealthStatus]]:
        result = self.fetch(self.base_url + self.health_path)
        if not result.ok:
            return result, None
        if not isinstance(result.data, dict) or not result.data:
            return self._invalid(result, "empty health payload"), None
        try:
            return result, HealthStatus.model_validate(result.data)
        except ValidationError as exc:
            self._log.debug("Unexpected health payload", exc_info=exc)
            return self._invalid(result, "unexpected health payload"), None

    def dashboard(self) -> Tuple[FetchResult, Optional[WeatherSnapshot]]:
        result = self.fetch(self.base_url + self.dashboard_path)
        if not result.ok:
            return result, None
        if not isinstance(result.data, dict) or not result.data:
            return self._invalid(result, "empty dashboard payload"), None
        return result, WeatherSnapshot.from_payload(result.data)

    @staticmethod
    def _invalid(result: FetchResult, message: str) -> FetchResult:
        return FetchResult(
            url=result.url,
            ok=False,
            status_code=result.status_code,
            error_kind=ErrorKind.INVALID_BODY,
            message=message,
        )


__all__ = ["AcuparseClient", "HealthStatus"]
