# -*- coding: utf-8 -*-
"""Scripted stand-ins for the control and data connections."""

import io

from ftpsession import FTPSession, error_connect


class FakeControl:
    """Control connection replaying scripted server lines."""

    def __init__(self, *lines):
        script = b''
        for line in lines:
            if isinstance(line, str):
                line = line.encode('utf-8') + b'\r\n'
            script += line
        self.rfile = io.BytesIO(script)
        self.sent = bytearray()
        self.closed = False

    def makefile(self, mode='r'):
        return self.rfile

    def sendall(self, data):
        self.sent += data

    def settimeout(self, timeout):
        pass

    def close(self):
        self.closed = True

    @property
    def commands(self):
        return self.sent.decode('utf-8').split('\r\n')[:-1]


class FakeData:
    """Data connection serving ``data`` and recording what is sent.

    ``max_send`` limits the bytes accepted per send() call, ``fail_send``
    makes send() raise and ``send_result`` forces its return value.
    """

    def __init__(self, data=b'', max_send=None, fail_send=False,
                 send_result=None, fail_recv=False):
        self.rfile = io.BytesIO(data)
        self.received = bytearray()
        self.max_send = max_send
        self.fail_send = fail_send
        self.send_result = send_result
        self.fail_recv = fail_recv
        self.send_calls = 0
        self.closed = False

    def recv(self, bufsize):
        if self.fail_recv:
            raise ConnectionResetError(104, "Connection reset by peer")
        return self.rfile.read(bufsize)

    def send(self, data):
        self.send_calls += 1

        if self.fail_send:
            raise BrokenPipeError(32, "Broken pipe")

        if self.send_result is not None:
            return self.send_result

        n = len(data)
        if self.max_send is not None:
            n = min(n, self.max_send)

        self.received += bytes(data[:n])
        return n

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class ScriptedSession(FTPSession):
    """FTPSession handing out prepared sockets instead of connecting."""

    def __init__(self, *socks, **kw):
        self.socks = list(socks)
        self.addresses = []
        super().__init__(**kw)

    def _create_connection(self, addr):
        self.addresses.append(addr)
        if not self.socks:
            raise error_connect("Could not connect to %s:%s" % addr)
        return self.socks.pop(0)


def logged_in(*lines, data=()):
    """Return a logged in ScriptedSession and its control connection.

    ``lines`` are the server replies following the login exchange,
    ``data`` the data connections handed out in order.
    """
    ctrl = FakeControl('220 Service ready', '331 Password required',
                       '230 Logged in', *lines)
    ftp = ScriptedSession(ctrl, *data)
    ftp.connect('ftp.example.com')
    ftp.login('joe', 'secret')
    return ftp, ctrl
