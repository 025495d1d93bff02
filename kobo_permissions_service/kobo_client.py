import aiohttp

from abc import ABC, abstractmethod
from fastapi import Depends
from structlog.stdlib import BoundLogger
from typing import Annotated, Any, Iterable

from .config import ConfigDependency
from .constants import KOBO_API_PREFIX
from .logger import LoggerDependency
from .models import BulkAssignmentResult, PermissionAssignment

__all__ = [
    "KoboClientError",
    "KoboRemoteError",
    "BaseKoboClient",
    "KoboClient",
    "permission_assignments_url",
    "get_kobo_client",
    "KoboClientDependency",
]


class KoboClientError(Exception):
    pass


class KoboRemoteError(KoboClientError):
    """
    Raised when KoboToolbox answers with a non-success status. Carries the remote status and body so they can be
    surfaced verbatim to the caller.
    """

    def __init__(self, message: str, status: int, body: str = ""):
        super().__init__(message)
        self.message: str = message
        self.status: int = status
        self.body: str = body


def permission_assignments_url(base_url: str, asset_uid: str) -> str:
    return f"{base_url.rstrip('/')}{KOBO_API_PREFIX}/assets/{asset_uid}/permission-assignments/"


def auth_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Token {token}",
        "Content-Type": "application/json",
    }


class BaseKoboClient(ABC):
    def __init__(self, logger: BoundLogger, timeout: float, debug: bool):
        self._logger: BoundLogger = logger
        self._timeout: float = timeout
        self._debug: bool = debug

    @property
    def debug(self) -> bool:
        return self._debug

    @abstractmethod
    async def get_permission_assignments(
        self, token: str, base_url: str, asset_uid: str
    ) -> list[PermissionAssignment]:  # pragma: no cover
        pass

    @abstractmethod
    async def bulk_assign_permissions(
        self, token: str, base_url: str, asset_uid: str, assignments: Iterable[PermissionAssignment]
    ) -> BulkAssignmentResult:  # pragma: no cover
        pass


class KoboClient(BaseKoboClient):
    def _session(self) -> aiohttp.ClientSession:
        # TLS verification is turned off in debug mode, for local KoboToolbox instances with self-signed certificates.
        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=not self.debug),
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )

    async def get_permission_assignments(self, token: str, base_url: str, asset_uid: str) -> list[PermissionAssignment]:
        url = permission_assignments_url(base_url, asset_uid)
        logger = self._logger.bind(asset_uid=asset_uid, url=url)

        async with self._session() as session:
            async with session.get(url, headers=auth_headers(token)) as res:
                if not res.ok:
                    body = await res.text()
                    await logger.awarning("failed to fetch permission assignments", status=res.status)
                    raise KoboRemoteError("Failed to fetch permissions", res.status, body)

                data = await res.json(content_type=None)
                if not isinstance(data, list):
                    raise ValueError(f"expected a list of permission assignments, got {type(data).__name__}")

                await logger.adebug("fetched permission assignments", status=res.status, n_assignments=len(data))
                return [PermissionAssignment.model_validate(a) for a in data]

    @staticmethod
    async def _bulk_response_json(res: aiohttp.ClientResponse, logger: BoundLogger) -> Any:
        # The assignments have been written at this point, so an unreadable body must not turn into an error.
        try:
            return await res.json(content_type=None)
        except ValueError:
            await logger.awarning("bulk assignment response is not JSON; keeping it as text", status=res.status)
            return await res.text()

    async def bulk_assign_permissions(
        self, token: str, base_url: str, asset_uid: str, assignments: Iterable[PermissionAssignment]
    ) -> BulkAssignmentResult:
        url = f"{permission_assignments_url(base_url, asset_uid)}bulk/"
        payload = [a.model_dump(mode="json", exclude_none=True) for a in assignments]
        logger = self._logger.bind(asset_uid=asset_uid, url=url, n_assignments=len(payload))

        async with self._session() as session:
            async with session.post(url, headers=auth_headers(token), json=payload) as res:
                # Unlike fetching, a failed bulk submission is reported as a result; the caller relays the status and
                # body text as-is.
                data = (await self._bulk_response_json(res, logger)) if res.ok else (await res.text())
                await logger.ainfo("submitted bulk permission assignments", status=res.status, ok=res.ok)
                return BulkAssignmentResult(ok=res.ok, status=res.status, data=data)


def get_kobo_client(config: ConfigDependency, logger: LoggerDependency) -> BaseKoboClient:
    return KoboClient(logger, config.kobo_request_timeout, config.debug)


KoboClientDependency = Annotated[BaseKoboClient, Depends(get_kobo_client)]
