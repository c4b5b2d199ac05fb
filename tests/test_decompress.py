"""
Tests for in-place xz decompression of directory trees.
"""

import asyncio
import os
import sys

import pytest
from async_test_utils import xz

from torfetch.exceptions import DecompressionError
from torfetch.unpack.decompress import decompress_file, decompress_tree

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_decompress_file_in_place(tmp_path):
    target = tmp_path / "geoip"
    target.write_bytes(xz(b"16777216,16777471,AU\n"))

    result = await decompress_file(target, chunk_size=3)

    assert result == target
    assert target.read_bytes() == b"16777216,16777471,AU\n"
    assert os.listdir(tmp_path) == ["geoip"]


@pytest.mark.asyncio
async def test_decompress_empty_payload(tmp_path):
    target = tmp_path / "empty"
    target.write_bytes(xz(b""))

    await decompress_file(target)

    assert target.read_bytes() == b""


@pytest.mark.asyncio
async def test_corrupt_file_raises_and_keeps_original(tmp_path):
    target = tmp_path / "tor"
    target.write_bytes(b"not xz at all")

    with pytest.raises(DecompressionError) as exc_info:
        await decompress_file(target)

    assert exc_info.value.path == str(target)
    assert target.read_bytes() == b"not xz at all"
    assert os.listdir(tmp_path) == ["tor"]


@pytest.mark.asyncio
async def test_truncated_stream_raises(tmp_path):
    target = tmp_path / "tor"
    target.write_bytes(xz(b"x" * 4096)[:-12])

    with pytest.raises(DecompressionError):
        await decompress_file(target)

    assert os.listdir(tmp_path) == ["tor"]


@pytest.mark.asyncio
async def test_decompress_tree_recurses(tmp_path):
    files = {
        "tor": b"elf",
        "geoip": b"v4",
        "lib/libevent.so": b"so",
        "lib/deep/er/file": b"deep",
        "pluggable_transports/obfs4proxy": b"pt",
    }
    for name, payload in files.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(xz(payload))
    (tmp_path / "empty" / "dir").mkdir(parents=True)

    await decompress_tree(tmp_path)

    for name, payload in files.items():
        assert (tmp_path / name).read_bytes() == payload
    assert (tmp_path / "empty" / "dir").is_dir()
    assert list((tmp_path / "empty" / "dir").iterdir()) == []
    assert not list(tmp_path.rglob("*.decompressed"))


@pytest.mark.asyncio
async def test_decompress_tree_on_empty_directory(tmp_path):
    await decompress_tree(tmp_path)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
@pytest.mark.asyncio
async def test_decompress_tree_skips_symlinks(tmp_path):
    outside = tmp_path / "outside"
    outside.write_bytes(b"plain text")
    tree = tmp_path / "tree"
    tree.mkdir()
    (tree / "tor").write_bytes(xz(b"elf"))
    (tree / "link").symlink_to(outside)

    await decompress_tree(tree)

    assert (tree / "tor").read_bytes() == b"elf"
    assert outside.read_bytes() == b"plain text"


@pytest.mark.asyncio
async def test_decompress_tree_propagates_first_failure(tmp_path):
    (tmp_path / "good").write_bytes(xz(b"ok"))
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "bad").write_bytes(b"garbage")

    with pytest.raises(DecompressionError) as exc_info:
        await decompress_tree(tmp_path)

    assert exc_info.value.path == str(tmp_path / "sub" / "bad")
    assert not list(tmp_path.rglob("*.decompressed"))


@pytest.mark.asyncio
async def test_decompress_tree_missing_directory(tmp_path):
    with pytest.raises(DecompressionError):
        await decompress_tree(tmp_path / "missing")


@pytest.mark.asyncio
async def test_cancellation_discards_partial_output(tmp_path, mocker):
    target = tmp_path / "tor"
    target.write_bytes(xz(b"x" * 1024))
    decompressor_cls = mocker.patch("torfetch.unpack.decompress.lzma.LZMADecompressor")
    decompressor_cls.return_value.decompress.side_effect = asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await decompress_file(target)

    assert os.listdir(tmp_path) == ["tor"]


@pytest.mark.asyncio
@pytest.mark.parametrize("chunk_size", [1, 7, 64 * 1024])
async def test_concatenated_streams_are_all_decoded(tmp_path, chunk_size):
    target = tmp_path / "torrc-defaults"
    target.write_bytes(xz(b"first\n") + xz(b"second\n"))

    await decompress_file(target, chunk_size=chunk_size)

    assert target.read_bytes() == b"first\nsecond\n"


@pytest.mark.asyncio
async def test_null_padding_between_streams_is_skipped(tmp_path):
    target = tmp_path / "geoip"
    target.write_bytes(xz(b"v4\n") + b"\x00" * 8 + xz(b"more\n") + b"\x00" * 4)

    await decompress_file(target, chunk_size=5)

    assert target.read_bytes() == b"v4\nmore\n"


@pytest.mark.asyncio
@pytest.mark.parametrize("chunk_size", [3, 64 * 1024])
async def test_trailing_garbage_raises(tmp_path, chunk_size):
    target = tmp_path / "tor"
    original = xz(b"elf") + b"trailing junk"
    target.write_bytes(original)

    with pytest.raises(DecompressionError):
        await decompress_file(target, chunk_size=chunk_size)

    assert target.read_bytes() == original
    assert os.listdir(tmp_path) == ["tor"]
