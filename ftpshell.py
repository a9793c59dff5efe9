#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Interactive passive-mode FTP client.

Usage::

    pasvftp [-d] [-v] [host [port]]

    -d  increase the session debug level (may be repeated)
    -v  enable verbose (debug) logging output

Type 'help' at the 'ftp>' prompt for the available commands.

"""

import argparse
import logging
import sys

from ftpsession import FTP_PORT, TYPE_ASCII, TYPE_IMAGE, Error, FTPSession

PROMPT = "ftp> "
# Errors a command reports without leaving the command loop
FAILURES = (Error, OSError, ValueError)
USAGE = {
    'connect': "connect <host> [port]   - Connect to FTP server",
    'login': "login <user> <pass>     - Login with username and password",
    'ls': "ls                      - List files",
    'get': "get <remote> [local]    - Download file",
    'put': "put <local> [remote]    - Upload file",
    'type': "type [a|i]              - Set transfer type (ASCII or binary)",
    'quit': "quit                    - Quit the application",
    'help': "help                    - Show this help",
}


def split(path):
    if path == "":
        return ("", "")

    r = path.rstrip("/").rsplit("/", 1)

    if len(r) == 1:
        return ("", path)

    return (r[0] or "/", r[1])


def basename(path):
    return split(path)[1]


class LocalFile:
    """Byte sink which opens path for writing on the first block.

    Nothing happens to an existing file at path until data arrives or
    open() is called.
    """

    def __init__(self, path):
        self.path = path
        self.fp = None

    def open(self):
        if self.fp is None:
            self.fp = open(self.path, 'wb')
        return self.fp

    def write(self, data):
        return self.open().write(data)

    def close(self):
        fp = self.fp
        self.fp = None
        if fp is not None:
            fp.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class Shell:
    """Read commands and run them against an FTPSession.

    Each command maps to exactly one session operation. Failures are
    reported on stderr and never end the loop.
    """

    prompt = PROMPT

    def __init__(self, session=None, stdin=None, stdout=None, stderr=None):
        self.session = session if session is not None else FTPSession()
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.commands = {
            'connect': self.do_connect,
            'login': self.do_login,
            'ls': self.do_ls,
            'get': self.do_get,
            'put': self.do_put,
            'type': self.do_type,
            'quit': self.do_quit,
            'help': self.do_help,
        }

    def say(self, msg):
        print(msg, file=self.stdout)

    def fail(self, msg, exc=None):
        if exc is not None:
            msg = "%s: %s" % (msg, exc)
        print(msg, file=self.stderr)

    def usage(self, cmd):
        self.fail("Usage: " + USAGE[cmd].split(' - ')[0].rstrip())

    def do_connect(self, host=None, port=None):
        if not host:
            return self.usage('connect')

        try:
            port = int(port) if port else FTP_PORT
        except ValueError:
            return self.fail("Invalid port: %s" % port)

        try:
            self.session.connect(host, port)
        except FAILURES as exc:
            self.fail("Failed to connect", exc)
        else:
            self.say("Connected to %s" % host)

    def do_login(self, user=None, passwd=None):
        if not user or not passwd:
            return self.usage('login')

        try:
            self.session.login(user, passwd)
        except FAILURES as exc:
            self.fail("Login failed", exc)
        else:
            self.say("Logged in as %s" % user)

    def do_ls(self, *args):
        try:
            self.session.list(self._text_writer())
        except FAILURES as exc:
            self.fail("Failed to list files", exc)

    def _text_writer(self):
        encoding = self.session.encoding

        def write(data):
            self.stdout.write(data.decode(encoding, 'replace'))

        return write

    def do_get(self, remote=None, local=None):
        if not remote:
            return self.usage('get')

        local = local or remote

        try:
            with LocalFile(local) as sink:
                self.session.download(remote, sink.write)
                # an empty remote file still creates the local one
                sink.open()
        except FAILURES as exc:
            self.fail("Download failed", exc)
        else:
            self.say("Downloaded %s to %s" % (remote, local))

    def do_put(self, local=None, remote=None):
        if not local:
            return self.usage('put')

        remote = remote or basename(local)

        try:
            with open(local, 'rb') as fp:
                self.session.upload(fp, remote)
        except FAILURES as exc:
            self.fail("Upload failed", exc)
        else:
            self.say("Uploaded %s as %s" % (local, remote))

    def do_type(self, code=None, *args):
        if not code:
            return self.usage('type')

        code = TYPE_ASCII if code[0] in 'aA' else TYPE_IMAGE

        try:
            self.session.set_type(code)
        except FAILURES as exc:
            self.fail("Failed to set type", exc)
        else:
            self.say("Type set to %s" % ('ASCII' if code == TYPE_ASCII
                                         else 'Binary'))

    def do_quit(self, *args):
        try:
            self.session.logout()
        except FAILURES as exc:
            self.fail("Logout failed", exc)
            self.session.close()

        self.say("Goodbye.")
        return True

    def do_help(self, *args):
        self.say("Available commands:")
        for line in USAGE.values():
            self.say(" " + line)

    def onecmd(self, line):
        """Run one command line. Return True if the loop should stop."""
        words = line.split(None, 2)

        if not words:
            return False

        cmd, args = words[0], words[1:]
        handler = self.commands.get(cmd)

        if handler is None:
            self.fail("Unknown command: %s" % cmd)
            return False

        return bool(handler(*args))

    def cmdloop(self):
        self.say("Welcome to the FTP client.\nType 'help' for available "
                 "commands.")

        while 1:
            self.stdout.write(self.prompt)
            self.stdout.flush()
            line = self.stdin.readline()

            if not line:
                # EOF
                break

            if self.onecmd(line.strip()):
                break


def main(args=None):
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument(
        "-d",
        "--debug",
        action="count",
        default=0,
        help="Increase session debug level (may be repeated)",
    )
    ap.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output"
    )
    ap.add_argument(
        "host",
        nargs='?',
        help="FTP server to connect to on startup"
    )
    ap.add_argument(
        "port",
        nargs='?',
        help="FTP server port (default: %s)" % FTP_PORT
    )

    args = ap.parse_args(args)

    if args.verbose or args.debug:
        logging.basicConfig(level=logging.DEBUG)

    session = FTPSession()
    session.set_debuglevel(args.debug)
    shell = Shell(session)

    if args.host:
        shell.do_connect(args.host, args.port)

    try:
        shell.cmdloop()
    finally:
        if session.connected:
            session.close()

    return 0


if __name__ == '__main__':
    sys.exit(main() or 0)
