from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import webbrowser
from pathlib import Path
from typing import Any, List, Optional

from party_starter.runtime.process import (
    NoPortAvailable,
    ServerStartTimeout,
    find_available_port,
    wait_until_ready,
)
from party_starter.runtime.scaffold import (
    ScaffoldError,
    check_package_manager,
    copy_template,
    install_dependencies,
)
from party_starter.runtime.schema import LaunchSettings, ReadinessOutcome

logger = logging.getLogger(__name__)


def dev_command(package_manager: str, port: int) -> List[str]:
    """Build the dev-server command; npm needs ``run`` and ``--`` to forward the port flag."""
    name = Path(package_manager).stem.lower()
    if name == "npm":
        return [package_manager, "run", "dev", "--", "-p", str(port)]
    return [package_manager, "dev", "-p", str(port)]


def start_dev_server(target_dir: Path, package_manager: str, port: int) -> subprocess.Popen:
    """Spawn the dev server in its own process group so it can be stopped as a whole."""
    env = os.environ.copy()
    env["PORT"] = str(port)
    kwargs: dict[str, Any] = {}
    if os.name == "nt":
        kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True

    cmd = dev_command(package_manager, port)
    logger.info("Starting %s in %s", " ".join(cmd), target_dir)
    try:
        return subprocess.Popen(cmd, cwd=str(target_dir), env=env, **kwargs)
    except OSError as e:
        raise ScaffoldError(f"Failed to start development server: {e}") from e


class DevServerSession:
    """
    Tracks a running dev server.

    ``stop_event`` is set when the operator interrupts or when the child exits
    on its own; ``interrupted`` tells the two apart.
    """

    def __init__(self, process: subprocess.Popen, port: int):
        self.process = process
        self.port = port
        self.stop_event = threading.Event()
        self.interrupted = False
        self._previous_handler: Any = None
        self._handler_installed = False
        self._watcher = threading.Thread(target=self._watch, daemon=True)

    def _watch(self) -> None:
        self.process.wait()
        logger.debug("Dev server exited with code %s", self.process.returncode)
        self.stop_event.set()

    def start_watching(self) -> "DevServerSession":
        self._watcher.start()
        return self

    def interrupt(self, signum: Optional[int] = None, frame: Any = None) -> None:
        self.interrupted = True
        self.stop_event.set()

    def install_interrupt_handler(self) -> None:
        try:
            self._previous_handler = signal.signal(signal.SIGINT, self.interrupt)
            self._handler_installed = True
        except ValueError:
            # signal.signal only works on the main thread.
            logger.debug("Not on the main thread; SIGINT handler not installed")

    def restore_interrupt_handler(self) -> None:
        if self._handler_installed:
            previous = self._previous_handler
            signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)
            self._handler_installed = False

    @property
    def returncode(self) -> Optional[int]:
        return self.process.poll()

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the dev server and its children, killing them if they ignore SIGTERM."""
        if self.process.poll() is not None:
            return
        logger.info("Stopping development server (pid %s)", self.process.pid)
        try:
            if os.name == "nt":
                self.process.terminate()
            else:
                os.killpg(self.process.pid, signal.SIGTERM)
        except ProcessLookupError:
            return
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Development server did not stop within %.1fs, killing it", timeout)
            if os.name == "nt":
                self.process.kill()
            else:
                os.killpg(self.process.pid, signal.SIGKILL)
            self.process.wait()


def open_browser(url: str) -> None:
    print("\nOpening browser...")
    if not webbrowser.open(url):
        logger.warning("No browser available to open %s", url)


def _serve(session: DevServerSession, settings: LaunchSettings) -> int:
    policy = settings.poll
    result = wait_until_ready(
        session.port,
        path=policy.target_path,
        max_attempts=policy.max_attempts,
        interval=policy.interval,
        cancel_event=session.stop_event,
        host=settings.host,
        request_timeout=policy.request_timeout,
    )

    if result.outcome is ReadinessOutcome.CANCELLED:
        if session.interrupted:
            print("\nStopped before the server was ready.")
            return 0
        code = session.returncode
        print(f"\nError: development server exited with code {code} before it was ready.")
        return code or 1

    try:
        result.raise_for_outcome()
    except ServerStartTimeout as e:
        if not settings.open_on_timeout:
            print(f"\nError: {e}")
            return 1
        logger.warning("%s; opening it anyway", e)
    else:
        print(f"Server ready after {result.attempts} attempt(s) ({result.elapsed:.1f}s)")

    url = settings.url_for(session.port)
    if settings.open_browser:
        open_browser(url)

    print("\n" + "=" * 60)
    print("  Your starter app is running!")
    print(f"  Open in browser: {url}")
    print("=" * 60)
    print("\nPress Ctrl+C to stop...")
    while not session.stop_event.wait(0.5):
        pass

    if session.interrupted:
        print("Goodbye!")
        return 0
    code = session.returncode
    print(f"\nDevelopment server exited with code {code}.")
    return code or 0


def run_create(settings: LaunchSettings) -> int:
    """Scaffold the project, start its dev server and open it once it responds."""
    if settings.template_dir is None:
        print("Error: no template directory given (use --template or PARTY_STARTER_TEMPLATE_DIR).")
        return 1

    process: Optional[subprocess.Popen] = None
    session: Optional[DevServerSession] = None
    try:
        package_manager = check_package_manager(settings.package_manager)
        target = copy_template(settings.template_dir, settings.target_dir)
        print(f"\nSuccess! Created {target} from {settings.template_dir}.")

        if settings.install:
            print(f"\nInstalling packages with {settings.package_manager}...")
            install_dependencies(target, package_manager)
            print("\nPackages installed successfully!")

        port = find_available_port(settings.start_port)
        print(f"\nStarting the development server on port {port}...")
        process = start_dev_server(target, package_manager, port)
        session = DevServerSession(process, port)
        session.install_interrupt_handler()
        session.start_watching()
        return _serve(session, settings)
    except (ScaffoldError, NoPortAvailable) as e:
        print(f"\nError: {e}")
        return 1
    except KeyboardInterrupt:
        # Ctrl+C before our SIGINT handler took over.
        print("\nStopped.")
        return 0
    finally:
        if session is None and process is not None:
            session = DevServerSession(process, port)
        if session is not None:
            session.terminate()
            session.restore_interrupt_handler()
