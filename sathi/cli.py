"""Command-line interface for Sewa Sathi.

Provides ``sewa-sathi start``, ``stop``, ``status``, ``commands`` and
``say``.  The entry point is registered via ``pyproject.toml`` as
``sewa-sathi = "sathi.cli:cli"``.
"""

import logging
import os
import signal
import sys
import time

import click
import httpx

from sathi.config import LOG_FILE, PID_FILE, SATHI_DIR, get_port

logger = logging.getLogger(__name__)

_MIN_PORT = 1024
_MAX_PORT = 65535


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_port(port: int | None) -> int:
    """Return the port to use, falling back to env var / default."""
    if port is not None:
        return port
    return get_port()


def _validate_port(port: int) -> None:
    if not (_MIN_PORT <= port <= _MAX_PORT):
        raise click.BadParameter(
            f"Port must be between {_MIN_PORT} and {_MAX_PORT}, got {port}."
        )


def _read_pid() -> int | None:
    try:
        return int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None


def _is_process_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
        return True
    except OSError:
        return False


def _base_url(port: int) -> str:
    return f"http://127.0.0.1:{port}"


def _fetch_health(port: int) -> dict | None:
    """Return the /health payload, or ``None`` if the server is not answering."""
    try:
        resp = httpx.get(f"{_base_url(port)}/health", timeout=2.0)
        if resp.status_code != 200:
            return None
        return resp.json()
    except (httpx.HTTPError, ValueError, OSError):
        return None


def _setup_logging_to_file() -> None:
    """Send root logging to the server log file (daemon mode)."""
    SATHI_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(LOG_FILE)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)


def _run_server(port: int, *, tts_enabled: bool, always_listening: bool) -> None:
    """Start uvicorn with the Sewa Sathi app.  Blocks until shutdown."""
    import uvicorn

    from sathi.server.app import create_app

    app = create_app(tts_enabled=tts_enabled, always_listening=always_listening)
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="info")


def _daemonize(port: int, *, tts_enabled: bool, always_listening: bool) -> None:
    """Fork into a background process; the parent records the child PID."""
    SATHI_DIR.mkdir(parents=True, exist_ok=True)

    pid = os.fork()
    if pid > 0:
        PID_FILE.write_text(str(pid))
        click.echo(click.style(f"Server started in background (PID {pid})", fg="green"))
        click.echo(f"  Logs: {LOG_FILE}")
        click.echo(f"  PID file: {PID_FILE}")
        return

    os.setsid()

    log_fd = os.open(str(LOG_FILE), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    os.dup2(log_fd, sys.stdout.fileno())
    os.dup2(log_fd, sys.stderr.fileno())
    os.close(log_fd)

    devnull = os.open(os.devnull, os.O_RDONLY)
    os.dup2(devnull, sys.stdin.fileno())
    os.close(devnull)

    _setup_logging_to_file()

    try:
        _run_server(port, tts_enabled=tts_enabled, always_listening=always_listening)
    except Exception:
        logger.exception("Daemon server crashed")
        sys.exit(1)
    finally:
        try:
            PID_FILE.unlink(missing_ok=True)
        except OSError:
            pass


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
def cli() -> None:
    """Sewa Sathi -- voice command assistant for accessible websites."""


# ---------------------------------------------------------------------------
# start
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--port", default=None, type=int, help="Server port (default: 7870)")
@click.option("--daemon", is_flag=True, help="Run as background process")
@click.option("--no-tts", is_flag=True, help="Disable spoken replies")
@click.option("--always-listen", is_flag=True, help="Restart listening after every command")
def start(port: int | None, daemon: bool, no_tts: bool, always_listen: bool) -> None:
    """Start the Sewa Sathi server."""
    port = _resolve_port(port)
    _validate_port(port)

    if no_tts:
        click.echo("Spoken replies disabled via --no-tts flag")

    existing_pid = _read_pid()
    if existing_pid is not None and _is_process_running(existing_pid):
        click.echo(
            click.style(
                f"Server is already running (PID {existing_pid}). "
                "Use 'sewa-sathi stop' first.",
                fg="yellow",
            )
        )
        raise SystemExit(1)

    click.echo(f"Starting Sewa Sathi on port {port}...")
    options = {"tts_enabled": not no_tts, "always_listening": always_listen}

    if daemon:
        _daemonize(port, **options)
        return

    SATHI_DIR.mkdir(parents=True, exist_ok=True)
    PID_FILE.write_text(str(os.getpid()))
    try:
        _run_server(port, **options)
    except OSError as exc:
        if "address already in use" in str(exc).lower():
            click.echo(
                click.style(
                    f"Port {port} is already in use. Choose a different port with --port.",
                    fg="red",
                )
            )
            raise SystemExit(1)
        raise
    finally:
        PID_FILE.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# stop
# ---------------------------------------------------------------------------


@cli.command()
def stop() -> None:
    """Stop the background Sewa Sathi server."""
    pid = _read_pid()

    if pid is None:
        click.echo(click.style("No PID file found, server may not be running.", fg="yellow"))
        raise SystemExit(1)

    if not _is_process_running(pid):
        click.echo(
            click.style(f"Process {pid} is not running. Cleaning up stale PID file.", fg="yellow")
        )
        PID_FILE.unlink(missing_ok=True)
        return

    click.echo(f"Stopping Sewa Sathi server (PID {pid})...")
    os.kill(pid, signal.SIGTERM)

    for _ in range(50):
        if not _is_process_running(pid):
            break
        time.sleep(0.1)
    else:
        click.echo(click.style(f"Process {pid} did not exit in time, sending SIGKILL.", fg="red"))
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError:
            pass

    PID_FILE.unlink(missing_ok=True)
    click.echo(click.style("Server stopped.", fg="green"))


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--port", default=None, type=int, help="Server port to check")
def status(port: int | None) -> None:
    """Show server status and component health."""
    port = _resolve_port(port)
    pid = _read_pid()

    if pid is None:
        click.echo(click.style("Server is not running (no PID file).", fg="yellow"))
        raise SystemExit(1)

    if not _is_process_running(pid):
        click.echo(click.style(f"PID file exists ({pid}) but process is not running.", fg="yellow"))
        PID_FILE.unlink(missing_ok=True)
        raise SystemExit(1)

    click.echo(f"Server process is running (PID {pid}).")

    data = _fetch_health(port)
    if data is None:
        click.echo(
            click.style(f"Server process is running but not responding on port {port}.", fg="yellow")
        )
        return

    click.echo(click.style("Server is healthy.", fg="green"))
    click.echo(f"  Version:     {data.get('version', '?')}")
    click.echo(f"  Port:        {port}")
    click.echo(f"  Commands:    {data.get('commands', '?')}")
    click.echo(f"  Listening:   {data.get('listening_state', '?')}")
    click.echo(f"  Speech:      {data.get('tts_state', '?')}")
    click.echo(f"  AI provider: {data.get('ai_provider') or 'none'}")


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------


@cli.command("commands")
@click.option("--port", default=None, type=int, help="Server port")
def list_commands(port: int | None) -> None:
    """List the commands a running server understands."""
    port = _resolve_port(port)
    try:
        resp = httpx.get(f"{_base_url(port)}/commands", timeout=5.0)
        resp.raise_for_status()
        commands = resp.json()["commands"]
    except (httpx.HTTPError, ValueError, KeyError) as exc:
        click.echo(click.style(f"Could not reach server on port {port}: {exc}", fg="red"))
        raise SystemExit(1)

    category = None
    for command in commands:
        if command["category"] != category:
            category = command["category"]
            click.echo(click.style(category.capitalize(), bold=True))
        click.echo(f"  {command['description']}")


# ---------------------------------------------------------------------------
# say
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("text")
@click.option("--port", default=None, type=int, help="Server port")
def say(text: str, port: int | None) -> None:
    """Send TEXT to a running server as if it had been spoken."""
    port = _resolve_port(port)
    try:
        resp = httpx.post(f"{_base_url(port)}/message", json={"text": text}, timeout=60.0)
        resp.raise_for_status()
        outcome = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        click.echo(click.style(f"Could not reach server on port {port}: {exc}", fg="red"))
        raise SystemExit(1)

    reply = outcome.get("reply")
    if outcome.get("pattern"):
        click.echo(click.style(f"[{outcome['pattern']}]", dim=True))
    if reply:
        click.echo(reply)
    else:
        click.echo(click.style(f"({outcome.get('kind', 'no reply')})", fg="yellow"))
