import subprocess
import threading

import pytest


class FakeProcess:
    """Stand-in for ``subprocess.Popen`` whose exit the test controls."""

    def __init__(self, pid=4321):
        self.pid = pid
        self.returncode = None
        self._exited = threading.Event()

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired("dev", timeout)
        return self.returncode

    def exit(self, code):
        self.returncode = code
        self._exited.set()

    def terminate(self):
        self.exit(-15)

    def kill(self):
        self.exit(-9)


@pytest.fixture
def fake_process():
    proc = FakeProcess()
    yield proc
    # Release any watcher thread still blocked on wait()
    if proc.returncode is None:
        proc.exit(0)
