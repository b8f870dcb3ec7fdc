from typing import Iterable, Optional, Protocol

from application.common.contracts import ConversionJob, ListPage


class ObjectStore(Protocol):
    """Blocking object store port. Use cases call it through ``asyncio.to_thread``."""

    def list_page(self, prefix: str, *, delimiter: Optional[str] = '/',
                  continuation_token: Optional[str] = None) -> ListPage:
        ...

    def put_object(self, key: str, body: bytes, *, content_type: Optional[str] = None) -> None:
        ...

    def upload_file(self, key: str, local_path: str, *, content_type: Optional[str] = None) -> None:
        ...

    def delete_objects(self, keys: Iterable[str]) -> int:
        ...

    def delete_object(self, key: str) -> None:
        ...

    def head_object(self, key: str) -> Optional[int]:
        ...

    def presign_get(self, key: str, expires_in: int) -> str:
        ...


class RunningProcess(Protocol):
    pid: Optional[int]

    async def wait(self) -> int:
        """Block until the process exits; stdout/stderr are drained meanwhile."""
        ...


class ProcessLauncher(Protocol):
    async def start(self, job: ConversionJob) -> RunningProcess:
        """Spawn the job's command. Raises ProcessStartupError when it cannot be launched."""
        ...
