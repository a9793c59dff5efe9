"""A minimal interactive passive-mode FTP client

The 'ftpsession' module holds the client session: it connects to a server,
logs in and lists, downloads and uploads files over data connections
negotiated with the PASV command. Replies from the control connection,
including multi-line replies, are read by the 'ftpreply' module.

The 'ftpshell' module provides the interactive 'pasvftp' command with the
commands 'connect', 'login', 'ls', 'get', 'put', 'type', 'quit' and 'help'.

Active mode (PORT), FTP-over-TLS and resuming interrupted transfers are not
supported.

The code is tested against the FTP server from the 'pyftpdlib' package.

"""

from setuptools import setup

setup(
    name='pasvftp',
    version='0.1.0',
    description=__doc__.splitlines()[0],
    long_description="".join(__doc__.splitlines()[2:]),
    license='Python Software Foundation License',
    python_requires='>=3.8',
    py_modules=[
        'ftpreply',
        'ftpsession',
        'ftpshell',
    ],
    entry_points={
        'console_scripts': [
            'pasvftp = ftpshell:main',
        ],
    },
    extras_require={
        'test': [
            'pyftpdlib',
            'pytest',
        ],
    },
)
