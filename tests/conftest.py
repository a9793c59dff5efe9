# -*- coding: utf-8 -*-

import pytest

from ftpserver import PASSWORD, USER, ServerThread, make_server
from ftpsession import FTPSession

HELLO = b"Hello, world!\n"
BINARY = bytes(range(256)) * 64


@pytest.fixture
def ftp_root(tmp_path):
    root = tmp_path / "ftproot"
    root.mkdir()
    (root / "hello.txt").write_bytes(HELLO)
    (root / "data.bin").write_bytes(BINARY)
    return root


@pytest.fixture
def ftp_server(ftp_root):
    thread = ServerThread(make_server(str(ftp_root)))
    thread.start()
    try:
        yield thread.address
    finally:
        thread.stop()


@pytest.fixture
def session(ftp_server):
    host, port = ftp_server
    ftp = FTPSession(host, port, USER, PASSWORD, timeout=10)
    try:
        yield ftp
    finally:
        ftp.close()
