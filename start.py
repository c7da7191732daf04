#!/usr/bin/env python3
"""
DartForge launcher — starts the backend and optionally opens a Dart project.
Run from the repository root: python start.py [project_dir]
"""

import os
import sys
import time
import subprocess
import threading
import urllib.request

ROOT = os.path.dirname(os.path.abspath(__file__))
BACKEND_PORT = 7847


def check_deps():
    missing = []
    for pkg, import_name in [
        ("flask", "flask"),
        ("watchdog", "watchdog"),
    ]:
        try:
            __import__(import_name)
        except ImportError:
            missing.append(pkg)
    if missing:
        print(f"[X] Missing dependencies: {', '.join(missing)}")
        print(f"  Run: pip install {' '.join(missing)}")
        sys.exit(1)


def start_backend(project_dir=None):
    print(f"  Starting backend on http://localhost:{BACKEND_PORT} ...")
    env = os.environ.copy()
    env["PYTHONPATH"] = ROOT
    if project_dir:
        env["DARTFORGE_PROJECT"] = os.path.abspath(project_dir)
    proc = subprocess.Popen(
        [sys.executable, "-m", "dartforge.app"],
        cwd=ROOT,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
    )

    # Stream backend output with prefix
    def stream():
        for line in proc.stdout:
            print(f"  [backend] {line.decode().rstrip()}")

    t = threading.Thread(target=stream, daemon=True)
    t.start()
    return proc


def wait_for_backend(timeout=10):
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            urllib.request.urlopen(
                f"http://localhost:{BACKEND_PORT}/api/project",
                timeout=1
            )
            return True
        except OSError:
            time.sleep(0.3)
    return False


def main():
    print()
    print(" ██████╗  █████╗ ██████╗ ████████╗███████╗ ██████╗ ██████╗  ██████╗ ███████╗")
    print(" ██╔══██╗██╔══██╗██╔══██╗╚══██╔══╝██╔════╝██╔═══██╗██╔══██╗██╔════╝ ██╔════╝")
    print(" ██║  ██║███████║██████╔╝   ██║   █████╗  ██║   ██║██████╔╝██║  ███╗█████╗  ")
    print(" ██║  ██║██╔══██║██╔══██╗   ██║   ██╔══╝  ██║   ██║██╔══██╗██║   ██║██╔══╝  ")
    print(" ██████╔╝██║  ██║██║  ██║   ██║   ██║     ╚██████╔╝██║  ██║╚██████╔╝███████╗")
    print(" ╚═════╝ ╚═╝  ╚═╝╚═╝  ╚═╝   ╚═╝   ╚═╝      ╚═════╝ ╚═╝  ╚═╝ ╚═════╝ ╚══════╝")
    print()
    print("  Dart Data Classes · JSON to Dart · Import Sorting · Watch & Regenerate")
    print()

    check_deps()

    project_dir = sys.argv[1] if len(sys.argv) > 1 else None
    if project_dir and not os.path.isdir(project_dir):
        print(f"  ✕ Project directory not found: {project_dir}")
        sys.exit(1)

    backend_proc = start_backend(project_dir)

    print("  Waiting for backend", end="", flush=True)
    ready = wait_for_backend(timeout=12)
    print()

    if not ready:
        print("  ✕ Backend failed to start. Check for errors above.")
        backend_proc.terminate()
        sys.exit(1)

    print(f"  ✓ Backend  →  http://localhost:{BACKEND_PORT}")
    print(f"  ✓ Events   →  http://localhost:{BACKEND_PORT}/api/events")
    print()
    print("  Press Ctrl+C to stop")
    print()

    try:
        backend_proc.wait()
    except KeyboardInterrupt:
        print("\n  Shutting down...")
        backend_proc.terminate()
        print("  ✓ Stopped")


if __name__ == "__main__":
    main()
