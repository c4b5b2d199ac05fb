from pathlib import Path

import platformdirs
import pytest
from async_test_utils import xz

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock aiohttp.ClientSession."
)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG` suggesting to mock `aiohttp.ClientSession`.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used across the test suite.

    Parameters:
        config: pytest.Config
    """
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test (auto-detected)"
    )
    config.addinivalue_line("markers", "unit: fast tests without I/O beyond tmp_path")
    config.addinivalue_line(
        "markers", "integration: tests driving the whole retrieval pipeline"
    )


def pytest_runtest_setup():
    """
    Replace aiohttp's HTTP entry points with a blocking coroutine so no test can reach the network.
    """
    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.head = _async_block_network  # type: ignore[assignment]


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at a temporary config directory and clear torfetch environment overrides.
    """
    base = tmp_path_factory.mktemp("torfetch")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.delenv("TORFETCH_REPOSITORY_URL", raising=False)
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )


@pytest.fixture
def build_unpacked_tree():
    """
    Factory creating a synthetic signmar output tree for a platform.

    Files are written xz-compressed, as they are inside a real MAR. Returns the
    mapping of normalized output names to expected decompressed bytes.
    """

    def _build(root: Path, platform: str):
        if platform == "osx":
            exe_dir = root / "Contents" / "MacOS" / "Tor"
            data_dir = root / "Contents" / "Resources" / "TorBrowser" / "Tor"
            files = {"tor.real": b"macho-tor", "libevent-2.1.7.dylib": b"dylib"}
            expected = {"tor": b"macho-tor", "libevent-2.1.7.dylib": b"dylib"}
        elif platform == "win":
            exe_dir = root / "TorBrowser" / "Tor"
            data_dir = root / "TorBrowser" / "Data" / "Tor"
            files = {"tor.exe": b"pe-tor", "zlib1.dll": b"dll"}
            expected = dict(files)
        else:
            exe_dir = root / "TorBrowser" / "Tor"
            data_dir = root / "TorBrowser" / "Data" / "Tor"
            files = {"tor": b"elf-tor", "libevent-2.1.so.7": b"so"}
            expected = dict(files)

        exe_dir.mkdir(parents=True)
        data_dir.mkdir(parents=True)
        for name, payload in files.items():
            (exe_dir / name).write_bytes(xz(payload))

        data = {
            "torrc-defaults": b"# torrc defaults\n",
            "geoip": b"16777216,16777471,AU\n",
            "geoip6": b"2001:200::,2001:200:ffff::,JP\n",
        }
        for name, payload in data.items():
            (data_dir / name).write_bytes(xz(payload))
        expected.update(data)
        return expected

    return _build
