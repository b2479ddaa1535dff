import logging

import pytest

from netwho.errors import RemoteCommandError


class FakeRunner:
    """Stands in for SshRunner: canned output per command, or an error."""

    def __init__(self, outputs=None, remote="user@host"):
        self.remote = remote
        self.outputs = dict(outputs or {})
        self.calls = []

    def run(self, command):
        self.calls.append(command)
        out = self.outputs.get(command)
        if out is None or isinstance(out, Exception):
            raise out if isinstance(out, Exception) else RemoteCommandError(command, 255, "no route")
        return out


SS_TAN = """\
State      Recv-Q Send-Q Local Address:Port   Peer Address:Port
LISTEN     0      128          0.0.0.0:22          0.0.0.0:*
LISTEN     0      511             [::]:80             [::]:*
LISTEN     0      4096   127.0.0.53%lo:53          0.0.0.0:*
ESTAB      0      0          10.0.0.5:54321   93.184.216.34:443
ESTAB      0      36         10.0.0.5:22      203.0.113.7:51000
ESTAB      0      0          10.0.0.5:40000   203.0.113.7:5432
TIME-WAIT  0      0          10.0.0.5:41000   198.51.100.9:443
ESTAB      0      0         127.0.0.1:6379     127.0.0.1:45000
ESTAB      0      0          10.0.0.5:443   198.51.100.20:61000
"""

SS_TANP = """\
State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process
LISTEN 0      128          0.0.0.0:22         0.0.0.0:*     users:(("sshd",pid=812,fd=3))
LISTEN 0      511             [::]:80            [::]:*     users:(("nginx",pid=1234,fd=6),("nginx",pid=1235,fd=6))
ESTAB  0      0          10.0.0.5:54321 93.184.216.34:443   users:(("node",pid=2001,fd=21))
ESTAB  0      0          10.0.0.5:54400 93.184.216.34:443   users:(("node",pid=2001,fd=22))
ESTAB  0      0          10.0.0.5:54500 93.184.216.34:443   users:(("curl",pid=2002,fd=3))
ESTAB  0      36         10.0.0.5:22      203.0.113.7:51000 users:(("sshd",pid=3003,fd=4))
TIME-WAIT 0   0          10.0.0.5:41000 198.51.100.9:443
"""

CMDLINES = (
    "1:/sbin/init\0splash\0\n"
    "812:sshd: /usr/sbin/sshd -D\0\n"
    "1234:nginx: master process /usr/sbin/nginx\0\n"
    "2001:/usr/bin/node\0--enable-source-maps\0/srv/app/server.ts\0\n"
    "2002:/usr/bin/curl\0-s\0https://example.com\0\0\n"
    "self:garbage\n"
)


@pytest.fixture
def runner():
    from netwho.config import CMDLINE_SNAPSHOT_CMD, SS_LISTING_CMD, SS_PROCESS_CMD
    return FakeRunner({
        SS_LISTING_CMD: SS_TAN,
        "sudo " + SS_PROCESS_CMD: SS_TANP,
        SS_PROCESS_CMD: SS_TANP,
        CMDLINE_SNAPSHOT_CMD: CMDLINES,
    })


@pytest.fixture(autouse=True)
def _netwho_logging():
    # let caplog see package records even after setup_logging() ran
    logger = logging.getLogger("netwho")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    yield
