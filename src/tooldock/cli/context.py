"""Application context with dependency injection.

The ToolDockContext dataclass holds all dependencies (config, time, HTTP client
factory, active version store, platform) and is created once at the CLI entry
point, then threaded through commands via Click's context object.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from tooldock.core.active_versions import (
    ActiveVersionStore,
    FilesystemActiveVersionStore,
    InMemoryActiveVersionStore,
)
from tooldock.core.fetcher import create_http_client
from tooldock.core.global_config import FilesystemConfigStore, GlobalConfig
from tooldock.core.layout import InstallLayout
from tooldock.core.platform import Platform
from tooldock.integrations.time import RealTime, Time


@dataclass(frozen=True)
class ToolDockContext:
    """Immutable context holding all dependencies for tooldock commands.

    Attributes:
        config: Root and shims directory
        time: Sleep provider used for retry backoff
        http_client_factory: Builds the httpx client for downloads
        active_versions: Package -> active version mapping
        platform: Platform installs are performed for
        debug: Whether debug logging is enabled
    """

    config: GlobalConfig
    time: Time
    http_client_factory: Callable[[], httpx.Client]
    active_versions: ActiveVersionStore
    platform: Platform
    debug: bool

    @property
    def layout(self) -> InstallLayout:
        return self.config.layout

    @staticmethod
    def for_test(
        root: Path,
        *,
        time: Time | None = None,
        http_client_factory: Callable[[], httpx.Client] | None = None,
        active_versions: ActiveVersionStore | None = None,
        platform: Platform | None = None,
        debug: bool = False,
    ) -> "ToolDockContext":
        """Create test context rooted at ``root`` with fakes by default.

        Args:
            root: Directory standing in for ~/.tooldock (usually ``tmp_path``)
            time: Optional Time implementation. If None, creates FakeTime.
            http_client_factory: Optional client factory. If None, any download
                attempt fails the test with a transport error.
            active_versions: Optional store. If None, uses an in-memory one.
            platform: Optional platform. If None, uses linux-amd64.
            debug: Whether to enable debug mode (default False)

        Returns:
            ToolDockContext configured with provided values and test defaults
        """
        from tooldock.integrations.time.fake import FakeTime

        def _offline_client() -> httpx.Client:
            def handler(request: httpx.Request) -> httpx.Response:
                raise httpx.ConnectError("network disabled in tests", request=request)

            return httpx.Client(transport=httpx.MockTransport(handler))

        return ToolDockContext(
            config=GlobalConfig.defaults(root),
            time=time if time is not None else FakeTime(),
            http_client_factory=(
                http_client_factory if http_client_factory is not None else _offline_client
            ),
            active_versions=(
                active_versions if active_versions is not None else InMemoryActiveVersionStore()
            ),
            platform=platform if platform is not None else Platform(os="linux", arch="amd64"),
            debug=debug,
        )


def create_context(*, debug: bool) -> ToolDockContext:
    """Create production context with real implementations.

    Called once at the CLI entry point.

    Raises:
        ValueError: If the global config file is malformed
    """
    config = FilesystemConfigStore().load()
    return ToolDockContext(
        config=config,
        time=RealTime(),
        http_client_factory=create_http_client,
        active_versions=FilesystemActiveVersionStore(config.layout.active_config_path),
        platform=Platform.detect(),
        debug=debug,
    )
