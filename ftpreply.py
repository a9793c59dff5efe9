# -*- coding: utf-8 -*-
"""Reading FTP server replies from the control connection.

A reply is one or more lines of text. The first line starts with a three
digit status code. If the code is followed by a dash, the reply continues
until a line starting with the same code followed by a space (RFC 959,
section 4.2)::

    >>> import io
    >>> from ftpreply import ReplyReader
    >>> reader = ReplyReader(io.BytesIO(b'226-Part1\\r\\nPart2\\r\\n226 Done\\r\\n'))
    >>> reader.getreply().lines
    ['226-Part1', 'Part2', '226 Done']

This module also defines the exception classes shared by the whole package.
"""

import logging

__all__ = (
    "Error",
    "MAXLINE",
    "Reply",
    "ReplyReader",
    "error_connect",
    "error_local",
    "error_perm",
    "error_proto",
    "error_reply",
    "error_state",
    "error_temp",
    "error_transfer",
)

log = logging.getLogger(__name__)

# The sizehint parameter passed to readline() calls
MAXLINE = 8192
LF = b'\n'
B_CRLF = b'\r\n'


# Exception raised when an error or invalid response is received
class Error(Exception):
    """Base FTP exception.

    ``resp`` is the reply that caused the error, if there was one.
    """

    def __init__(self, msg, resp=None):
        super().__init__(msg)
        self.resp = resp


class error_connect(Error):
    """Name resolution or TCP connection failure."""
    pass


class error_reply(Error):
    """Unexpected reply code."""
    pass


class error_temp(error_reply):
    """Unexpected 4xx reply."""
    pass


class error_perm(error_reply):
    """Unexpected 5xx reply."""
    pass


class error_proto(Error):
    """Missing or malformed reply."""
    pass


class error_local(Error):
    """The local byte sink or source failed."""
    pass


class error_transfer(Error):
    """Socket failure on the control or a data connection."""
    pass


class error_state(Error):
    """Operation not valid in the current session state."""
    pass


class Reply:
    """One logical server reply.

    An empty reply (no lines) means the server closed the connection before
    sending anything and is false in a boolean context.
    """

    def __init__(self, lines=()):
        self.lines = list(lines)

    @property
    def first(self):
        return self.lines[0] if self.lines else ''

    @property
    def code(self):
        """The three-digit status code as a string ('' for an empty reply)."""
        return self.first[:3]

    @property
    def text(self):
        return '\n'.join(self.lines)

    def is_multiline(self):
        return self.first[3:4] == '-'

    def __bool__(self):
        return bool(self.lines)

    def __len__(self):
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def __eq__(self, other):
        if isinstance(other, Reply):
            return self.lines == other.lines
        return NotImplemented

    def __str__(self):
        return self.text

    def __repr__(self):
        return "Reply(%r)" % (self.lines,)


class ReplyReader:
    """Read lines and replies from a binary file-like object.

    ``fp`` needs a ``readline(size)`` method returning bytes, e.g. the result
    of ``socket.makefile('rb')``.
    """

    maxline = MAXLINE
    encoding = "utf-8"
    debugging = 0

    def __init__(self, fp, encoding=None, maxline=None):
        self.fp = fp
        if encoding:
            self.encoding = encoding
        if maxline:
            self.maxline = maxline

    # Internal: return one raw line including its terminator, b'' at EOF.
    # readline() only splits on LF, so a CR not followed by LF stays in the
    # line.
    def _readraw(self):
        raw = self.fp.readline(self.maxline + 1)
        if len(raw) > self.maxline:
            raise Error("got more than %d bytes" % self.maxline)
        if self.debugging > 1:
            log.debug('*get* %r', raw)
        return raw

    def _decode(self, raw):
        if raw[-2:] == B_CRLF:
            raw = raw[:-2]
        elif raw[-1:] == LF:
            raw = raw[:-1]
        return raw.decode(self.encoding, "replace")

    def getline(self):
        """Return the next line without its line terminator.

        Return an empty string if the stream ended before any data was read.
        """
        return self._decode(self._readraw())

    def getreply(self):
        """Read one complete, possibly multi-line, reply.

        Returns an empty ``Reply`` if the stream was closed before the first
        line. Raises ``error_proto`` if the first line does not start with a
        status code or the stream ends inside a multi-line reply.
        """
        raw = self._readraw()
        if not raw:
            return Reply()

        line = self._decode(raw)
        code = line[:3]
        if len(code) != 3 or not code.isdigit():
            raise error_proto("Malformed reply: %r" % line, Reply([line]))

        lines = [line]
        if line[3:4] == '-':
            while 1:
                raw = self._readraw()
                if not raw:
                    raise error_proto("Connection closed inside multi-line "
                                      "%s reply" % code, Reply(lines))
                nextline = self._decode(raw)
                lines.append(nextline)
                if len(nextline) >= 4 and nextline[:3] == code and \
                        nextline[3] == ' ':
                    break

        return Reply(lines)
