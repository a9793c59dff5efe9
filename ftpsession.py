# -*- coding: utf-8 -*-
"""A passive-mode FTP client session.

Based on RFC 959: File Transfer Protocol (FTP), by J. Postel and J. Reynolds

Example::

    >>> from ftpsession import FTPSession
    >>> ftp = FTPSession('localhost', 2121)  # connect to host
    >>> ftp.login('joedoe', 'abc123')
    Reply(['230 Login successful.'])
    >>> ftp.list()  # list directory contents to stdout
    -rw-r--r--   1 joedoe   joedoe       1756 Jan 01  1970 setup.py
    >>> with open('setup.py', 'wb') as fp:
    ...     ftp.download('setup.py', fp.write)
    >>> with open('notes.txt', 'rb') as fp:
    ...     ftp.upload(fp, 'notes.txt')
    >>> ftp.logout()

All data transfers use passive mode: the client sends PASV, connects to the
address from the 227 reply and then sends the transfer command. Every
operation returns the reply that completed it and raises a subclass of
``Error`` on failure.
"""

import codecs
import logging
import socket
import sys

from ftpreply import (MAXLINE, Error, Reply, ReplyReader, error_connect,
                      error_local, error_perm, error_proto, error_reply,
                      error_state, error_temp, error_transfer)

__all__ = (
    "Error",
    "FTPSession",
    "FTP_PORT",
    "TYPE_ASCII",
    "TYPE_IMAGE",
    "error_connect",
    "error_local",
    "error_perm",
    "error_proto",
    "error_reply",
    "error_state",
    "error_temp",
    "error_transfer",
    "parse227",
)

log = logging.getLogger(__name__)

# The standard FTP server control port
FTP_PORT = 21
CRLF = '\r\n'
TYPE_ASCII = 'A'
TYPE_IMAGE = 'I'
TRANSFER_TYPES = {
    TYPE_ASCII: 'ASCII',
    TYPE_IMAGE: 'binary',
}
# Preliminary replies announcing the data connection is about to be used
OPENING_CODES = ('125', '150')


class FTPSession:
    """An FTP client session using passive mode for all data transfers.

    To create a connection, call the class using these arguments::

            host, port, user, passwd, timeout

    If you pass a host name or address to the constructor, the 'connect'
    method will be called directly with the host and port given. Otherwise
    use 'connect' later. If you also pass a non-empty value for user, the
    'login' method will be called after connecting.

    timeout defaults to None, meaning all socket operations block
    indefinitely. Otherwise it is applied to the control and every data
    connection.

    The session moves through three states: disconnected, connected and
    authenticated. 'set_type' and 'makepasv' need a connection, 'list',
    'download' and 'upload' need a successful login.
    """

    debugging = 0
    host = None
    port = FTP_PORT
    timeout = None
    maxline = MAXLINE
    blocksize = 8192
    encoding = "utf-8"
    sock = None
    file = None
    reader = None
    welcome = None
    lastresp = None
    authenticated = False
    transfer_type = TYPE_IMAGE

    def __init__(self, host=None, port=None, user=None, passwd=None,
                 timeout=None):
        if timeout is not None:
            self.timeout = timeout

        if host:
            self.connect(host, port)
            if user:
                self.login(user, passwd)

    def __enter__(self):
        return self

    # Context management protocol: try to logout() if active
    def __exit__(self, *args):
        if self.sock is not None:
            try:
                self.logout()
            except (Error, OSError):
                pass
            finally:
                if self.sock is not None:
                    self.close()

    @property
    def connected(self):
        return self.sock is not None

    def _create_connection(self, addr):
        host, port = addr

        try:
            # PASV only describes IPv4 endpoints
            addrinfos = socket.getaddrinfo(host, port, socket.AF_INET,
                                           socket.SOCK_STREAM)
        except (OSError, OverflowError) as exc:
            raise error_connect("Could not resolve %r: %s" % (host, exc))

        err = None
        for af, socktype, proto, _, sockaddr in addrinfos:
            sock = None
            try:
                sock = socket.socket(af, socktype, proto)
                if self.timeout is not None:
                    sock.settimeout(self.timeout)
                sock.connect(sockaddr)
            except (OSError, OverflowError) as exc:
                if self.debugging:
                    log.debug('*connect* %s:%s failed: %s', sockaddr[0],
                              sockaddr[1], exc)
                err = exc
                if sock is not None:
                    sock.close()
            else:
                return sock

        raise error_connect("Could not connect to %s:%s: %s" % (host, port, err))

    def connect(self, host=None, port=None):
        """Connect to host and read the server greeting.

        Arguments are:

        - host: hostname to connect to (string, default previous host)
        - port: port to connect to (integer, default 21)

        An existing control connection is closed first. Returns the 220
        greeting reply.
        """
        if self.sock is not None:
            self.close()

        if host:
            self.host = host
        if not self.host:
            raise ValueError("No host to connect to")
        self.port = port or FTP_PORT

        self.sock = self._create_connection((self.host, self.port))
        self.file = self.sock.makefile('rb')
        self.reader = ReplyReader(self.file, self.encoding, self.maxline)
        self.reader.debugging = self.debugging
        self.authenticated = False
        self.transfer_type = TYPE_IMAGE

        try:
            self.welcome = self.expect(self.getresp(), '220')
        except Error:
            self.close()
            raise

        return self.welcome

    def getwelcome(self):
        """Get the welcome message from the server.

        (this is read and squirreled away by connect().)
        """
        if self.debugging:
            log.debug('*welcome* %s', self.welcome)
        return self.welcome

    def set_debuglevel(self, level):
        """Set the debugging level.

        The required argument level means:

        0: no debugging output (default)
        1: log commands and responses but not body text etc.
        2: also log raw lines read and sent before stripping CR/LF
        """
        self.debugging = level
        if self.reader is not None:
            self.reader.debugging = level
    debug = set_debuglevel

    # Internal: "sanitize" a string for printing
    def sanitize(self, s):
        if s[:5] in {'pass ', 'PASS '}:
            i = len(s.rstrip('\r\n'))
            s = s[:5] + '*'*(i-5) + s[i:]
        return repr(s)

    def _check_connected(self):
        if self.sock is None:
            raise error_state("Not connected")

    def _check_authenticated(self):
        self._check_connected()
        if not self.authenticated:
            raise error_state("Not logged in")

    # Internal: send one line to the server, appending CRLF
    def putline(self, line):
        self._check_connected()
        if '\r' in line or '\n' in line:
            raise ValueError('an illegal newline character should not be '
                             'contained')
        line = line + CRLF
        if self.debugging > 1:
            log.debug('*put* %s', self.sanitize(line))
        try:
            self.sock.sendall(line.encode(self.encoding))
        except OSError as exc:
            raise error_transfer("Could not send command: %s" % exc)

    # Internal: send one command to the server (through putline())
    def putcmd(self, line):
        if self.debugging:
            log.debug('*cmd* %s', self.sanitize(line))
        self.putline(line)

    def getresp(self):
        """Read the next reply from the control connection.

        An empty reply means the server hung up: the session is closed and
        ``error_proto`` raised.
        """
        self._check_connected()
        try:
            resp = self.reader.getreply()
        except OSError as exc:
            raise error_transfer("Could not read reply: %s" % exc)

        if not resp:
            self.close()
            raise error_proto("Connection closed by server", resp)

        if self.debugging:
            log.debug('*resp* %s', self.sanitize(resp.text))

        self.lastresp = resp.code
        return resp

    def expect(self, resp, *codes):
        """Return resp if its status code is one of codes, else raise.

        4xx and 5xx codes raise ``error_temp`` and ``error_perm``, other
        unexpected [123]xx codes raise ``error_reply``.
        """
        if resp.code in codes:
            return resp

        c = resp.code[:1]
        if c == '4':
            raise error_temp(resp.text, resp)
        if c == '5':
            raise error_perm(resp.text, resp)
        if c in {'1', '2', '3'}:
            raise error_reply(resp.text, resp)
        raise error_proto(resp.text, resp)

    def sendcmd(self, cmd):
        """Send a command and return the response."""
        self.putcmd(cmd)
        return self.getresp()

    def login(self, user='', passwd=''):
        """Login, default anonymous.

        Servers answering USER with 230 need no password and PASS is not
        sent.
        """
        self._check_connected()

        if not user:
            user = 'anonymous'
        if not passwd:
            passwd = ''

        if user == 'anonymous' and passwd in ('', '-'):
            passwd = 'anonymous@'

        self.authenticated = False
        resp = self.expect(self.sendcmd('USER ' + user), '230', '331')

        if resp.code == '331':
            resp = self.expect(self.sendcmd('PASS ' + passwd), '230')

        self.authenticated = True
        return resp

    def logout(self):
        """Quit, and close the connection.

        Does nothing and returns None when not connected. If the server does
        not acknowledge with 221, the connection is left open.
        """
        if self.sock is None:
            return None

        resp = self.expect(self.sendcmd('QUIT'), '221')
        self.close()
        return resp
    quit = logout

    def set_type(self, code):
        """Set the transfer type, 'A' (ASCII) or 'I' (binary)."""
        self._check_connected()
        code = code.upper()

        if code not in TRANSFER_TYPES:
            raise ValueError("Unsupported transfer type: %r" % code)

        resp = self.expect(self.sendcmd('TYPE ' + code), '200')
        self.transfer_type = code
        return resp

    def makepasv(self):
        """Send PASV and return the (host, port) of the data endpoint."""
        self._check_connected()
        return parse227(self.expect(self.sendcmd('PASV'), '227'))

    # Internal: consume the reply the server sends for an aborted transfer,
    # so the next command sees its own reply
    def _skip_reply(self):
        try:
            self.getresp()
        except Error as exc:
            if self.debugging:
                log.debug('*skip* %s', exc)

    def _transfer(self, cmd, handler):
        host, port = self.makepasv()

        if self.debugging:
            log.debug('*data* connecting to %s:%d', host, port)

        with self._create_connection((host, port)) as conn:
            self.expect(self.sendcmd(cmd), *OPENING_CODES)
            try:
                handler(conn)
            except (error_local, error_transfer):
                conn.close()
                self._skip_reply()
                raise

        return self.expect(self.getresp(), '226')

    def _recv_into(self, conn, callback):
        while 1:
            try:
                data = conn.recv(self.blocksize)
            except OSError as exc:
                raise error_transfer("Could not read from data connection: "
                                     "%s" % exc)

            if not data:
                break

            try:
                callback(data)
            except OSError as exc:
                raise error_local("Could not write data: %s" % exc)

    # Internal: write all of buf, retrying partial writes with the rest
    def _sendall(self, conn, buf):
        view = memoryview(buf)

        while view:
            try:
                sent = conn.send(view)
            except OSError as exc:
                raise error_transfer("Could not write to data connection: "
                                     "%s" % exc)

            if sent <= 0:
                raise error_transfer("Data connection closed during write")

            view = view[sent:]

    def _send_from(self, conn, fp):
        while 1:
            try:
                buf = fp.read(self.blocksize)
            except OSError as exc:
                raise error_local("Could not read data: %s" % exc)

            if not buf:
                break

            self._sendall(conn, buf)

    def list(self, callback=None):
        """List the current remote directory in long form.

        Each block of data received is passed to callback, a single parameter
        callable. By default the listing is written to stdout.

        Returns the 226 reply.
        """
        self._check_authenticated()

        if callback is None:
            decoder = codecs.getincrementaldecoder(self.encoding)('replace')

            def callback(data):
                sys.stdout.write(decoder.decode(data))

        return self._transfer('LIST', lambda conn: self._recv_into(conn, callback))

    def download(self, remote_name, callback):
        """Retrieve a file using the current transfer type.

        Args:
          remote_name: Name of the file on the server.
          callback: A single parameter callable to be called on each
                    block of data read.

        Returns:
          The 226 reply.

        If the transfer fails, callback may already have received part of
        the file.
        """
        self._check_authenticated()
        self.set_type(self.transfer_type)
        return self._transfer('RETR ' + remote_name,
                              lambda conn: self._recv_into(conn, callback))

    def upload(self, fp, remote_name):
        """Store a file using the current transfer type.

        Args:
          fp: A file-like object with a read(num_bytes) method returning
              bytes.
          remote_name: Name to store the file under on the server.

        Returns:
          The 226 reply.
        """
        self._check_authenticated()
        self.set_type(self.transfer_type)
        return self._transfer('STOR ' + remote_name,
                              lambda conn: self._send_from(conn, fp))

    def close(self):
        """Close the connection without assuming anything about it."""
        self.authenticated = False
        self.reader = None
        try:
            file = self.file
            self.file = None
            if file is not None:
                file.close()
        finally:
            sock = self.sock
            self.sock = None
            if sock is not None:
                sock.close()


def _find_parentheses(s):
    left = s.find('(')
    if left < 0:
        raise ValueError("missing left delimiter")

    right = s.find(')', left + 1)
    if right < 0:
        # string should contain '(...)'
        raise ValueError("missing right delimiter")

    return left, right


def parse227(resp):
    """Parse the '227' response for a PASV request.

    Raises error_proto if it does not contain '(h1,h2,h3,h4,p1,p2)'

    Return ('host.addr.as.numbers', port#) tuple.
    """
    if isinstance(resp, Reply):
        resp = resp.text

    if not resp.startswith('227'):
        raise error_reply("Unexpected response: %s" % resp)

    try:
        left, right = _find_parentheses(resp)
        numbers = tuple(int(i) for i in resp[left+1:right].split(','))

        if len(numbers) != 6:
            raise ValueError("expected 6 numbers, got %d" % len(numbers))
    except ValueError as exc:
        raise error_proto("Error parsing response '%s': %s" % (resp, exc))

    host = '%i.%i.%i.%i' % numbers[:4]
    port = numbers[4] * 256 + numbers[5]
    return host, port
