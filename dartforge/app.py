"""
app.py — DartForge API server.
Flask backend that exposes the generator to editor integrations:
  - Project opening (pubspec probe, dartforge.json settings, file watching)
  - Data class generation for a document or a file on disk
  - Quick fixes and import sorting
  - JSON to data classes, with separate-file output
  - SSE for progress and watcher events
"""

import json
import os
import queue
import time
from flask import Flask, request, jsonify, Response, stream_with_context

from dartforge.commands import (
    CommandError, generate_data_class, generate_json_data_class, quick_fixes,
    regenerate_file, sort_imports,
)
from dartforge.config import ProjectInfo, Settings, load_settings, probe_project
from dartforge.dart_parser import parse_dart_classes
from dartforge.file_watcher import DartFileWatcher
from dartforge.file_writer import overwrite_file, read_dart_file, write_dart_file
from dartforge.imports import DartImports
from dartforge.json_import import JsonImportError
from dartforge.member_gen import parsing_utils_source

JSON_DOCUMENT_ERROR = "Please paste the JSON directly into an empty .dart file and then try again!"
PORT = 7847

app = Flask(__name__)

# ── State ──────────────────────────────────────────────────────────────────
_state = {
    "project_path": None,
    "project": ProjectInfo(),
    "settings": Settings.from_dict(),
    "watch_log": [],     # list of change events, newest first
}
_sse_queues: list = []  # SSE subscriber queues
_watcher = None


class ConfirmationRequired(Exception):
    """A question the HTTP client has to answer before the command can run."""

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.details = details


# ── SSE Broadcasting ───────────────────────────────────────────────────────

def _broadcast(event_type: str, data: dict):
    msg = {"type": event_type, "data": data, "ts": time.time()}
    dead = []
    for q in _sse_queues:
        try:
            q.put_nowait(msg)
        except queue.Full:
            dead.append(q)
    for q in dead:
        try:
            _sse_queues.remove(q)
        except ValueError:
            pass


# ── CORS Middleware ────────────────────────────────────────────────────────

@app.after_request
def add_cors(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.route("/", defaults={"path": ""}, methods=["OPTIONS"])
@app.route("/<path:path>", methods=["OPTIONS"])
def options_handler(path):
    return Response(status=204)


# ── SSE Endpoint ────────────────────────────────────────────────────────────

@app.route("/api/events")
def sse_events():
    q = queue.Queue(maxsize=100)
    _sse_queues.append(q)

    def generate():
        yield "data: {\"type\":\"connected\"}\n\n"
        while True:
            try:
                msg = q.get(timeout=15)
                yield f"data: {json.dumps(msg)}\n\n"
            except queue.Empty:
                # Heartbeat
                yield "data: {\"type\":\"ping\"}\n\n"

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        }
    )


# ── Helpers ────────────────────────────────────────────────────────────────

def _error(message: str, status: int, **extra):
    return jsonify({"error": message, **extra}), status


def _request_settings(data: dict) -> Settings:
    return _state["settings"].with_overrides(data.get("settings"))


def _check_document_path(path: str):
    """Returns an error response for paths that are not existing Dart files."""
    if path.endswith(".json"):
        return _error(JSON_DOCUMENT_ERROR, 400)
    if not path.endswith(".dart"):
        return _error(f"Not a Dart file: {path}", 400)
    if not os.path.isfile(path):
        return _error(f"File not found: {path}", 404)
    return None


def _document(data: dict):
    """(text, path, error_response) from a request carrying ``text`` or ``path``."""
    path = (data.get("path") or "").strip()
    if path:
        path = os.path.abspath(path)
        err = _check_document_path(path)
        if err:
            return None, None, err
        return read_dart_file(path), path, None

    text = data.get("text")
    if not isinstance(text, str):
        return None, None, _error("text or path required", 400)
    return text, None, None


# ── Project ─────────────────────────────────────────────────────────────────

@app.route("/api/project/open", methods=["POST"])
def open_project():
    data = request.get_json() or {}
    path = (data.get("path") or "").strip()
    if not path:
        return _error("path required", 400)

    path = os.path.abspath(path)
    if not os.path.isdir(path):
        return _error(f"Directory not found: {path}", 404)

    try:
        settings = load_settings(path)
    except ValueError as e:
        return _error(str(e), 400)

    _state["project_path"] = path
    _state["project"] = probe_project(path)
    _state["settings"] = settings

    if data.get("watch", True):
        _start_watcher(path)

    info = _project_info()
    _broadcast("project_opened", info)
    print(f"[OK] Opened project {_state['project'].name or path}")
    return jsonify(info)


@app.route("/api/project", methods=["GET"])
def get_project():
    return jsonify(_project_info())


def _project_info() -> dict:
    return {
        "path": _state["project_path"],
        "project": _state["project"].to_dict(),
        "settings": _state["settings"].to_dict(),
        "watching": _watcher is not None and _watcher.is_running,
    }


# ── Generation ──────────────────────────────────────────────────────────────

@app.route("/api/generate", methods=["POST"])
def generate():
    data = request.get_json() or {}
    text, path, err = _document(data)
    if err:
        return err

    try:
        settings = _request_settings(data)
    except ValueError as e:
        return _error(str(e), 400)

    selected = data.get("classes")
    choose = (lambda names: selected) if selected is not None else None

    overrides = data.get("overrides")
    pending = []

    def confirm(class_name, member):
        key = f"{class_name}.{member}"
        if overrides is None or key not in overrides:
            pending.append(key)
            return True
        return overrides[key]

    try:
        result = generate_data_class(text, settings, _state["project"], choose, confirm)
    except CommandError as e:
        return _error(str(e), 422)

    if pending and not result.cancelled:
        return _error("Confirm the members to override", 409, confirmation_required=pending)

    body = result.to_dict()
    if path and result.changed:
        overwrite_file(path, result.text)
        body["path"] = path
        _broadcast("generated", {"file": os.path.basename(path), "classes": body["classes"]})
    return jsonify(body)


@app.route("/api/parse", methods=["POST"])
def parse():
    data = request.get_json() or {}
    text, _, err = _document(data)
    if err:
        return err

    classes = parse_dart_classes(text, _state["settings"].get("json.key_format"))
    imports = DartImports(text, _state["project"])
    return jsonify({
        "classes": [c.to_dict() for c in classes],
        "imports": imports.values,
    })


@app.route("/api/quick-fixes", methods=["POST"])
def get_quick_fixes():
    data = request.get_json() or {}
    text, _, err = _document(data)
    if err:
        return err

    line = data.get("line")
    if not isinstance(line, int) or line < 1:
        return _error("line must be a positive integer", 400)

    try:
        settings = _request_settings(data)
    except ValueError as e:
        return _error(str(e), 400)

    fixes = quick_fixes(text, line, settings, _state["project"])
    return jsonify([f.to_dict() for f in fixes])


@app.route("/api/imports/sort", methods=["POST"])
def sort_document_imports():
    data = request.get_json() or {}
    text, _, err = _document(data)
    if err:
        return err

    edits = sort_imports(text, _state["project"])
    return jsonify({"edits": [e.to_dict() for e in edits]})


# ── JSON to Dart ────────────────────────────────────────────────────────────

@app.route("/api/json/generate", methods=["POST"])
def generate_from_json():
    data = request.get_json() or {}
    json_text = data.get("text")
    name = (data.get("name") or "").strip()
    if not isinstance(json_text, str) or not json_text.strip():
        return _error("text required", 400)

    path = (data.get("path") or "").strip()
    if path:
        path = os.path.abspath(path)
        if path.endswith(".json"):
            return _error(JSON_DOCUMENT_ERROR, 400)
        if not path.endswith(".dart"):
            return _error(f"Not a Dart file: {path}", 400)

    directory = data.get("directory")
    if not directory:
        directory = os.path.dirname(path) if path else _state["project_path"]

    try:
        settings = _request_settings(data)
    except ValueError as e:
        return _error(str(e), 400)

    def ask_separate():
        raise ConfirmationRequired("Generate separate files?", confirmation_required="separate")

    def progress(increment, message):
        _broadcast("progress", {"increment": increment, "message": message})

    try:
        result = generate_json_data_class(
            json_text, name, settings, _state["project"],
            directory=directory,
            separate=data.get("separate"),
            ask_separate=ask_separate,
            progress=progress,
        )
    except ConfirmationRequired as e:
        return _error(str(e), 409, **e.details)
    except (JsonImportError, CommandError) as e:
        return _error(str(e), 422)

    body = result.to_dict()
    if path and result.document is not None:
        overwrite_file(path, result.document)
        body["path"] = path
    if result.written:
        _broadcast("files_written", {"files": [os.path.basename(p) for p in result.written]})
    return jsonify(body)


@app.route("/api/parsing-utils", methods=["POST"])
def write_parsing_utils():
    data = request.get_json() or {}
    directory = data.get("directory") or _state["project_path"]
    if not directory:
        return _error("directory required", 400)

    try:
        path = write_dart_file(parsing_utils_source(), "parsing_utils", os.path.abspath(directory))
    except OSError as e:
        return _error(f"Could not write parsing_utils.dart: {e}", 500)
    return jsonify({"path": path})


# ── Watch Log ─────────────────────────────────────────────────────────────

@app.route("/api/watch-log", methods=["GET"])
def watch_log():
    return jsonify(_state["watch_log"][:50])


# ── Internals ─────────────────────────────────────────────────────────────

def _on_file_change(file_path: str, event_type: str):
    """Called by the file watcher when a .dart file changes."""
    log_entry = {
        "file": os.path.basename(file_path),
        "path": file_path,
        "event": event_type,
        "ts": time.strftime("%H:%M:%S"),
    }
    _state["watch_log"].insert(0, log_entry)
    _state["watch_log"] = _state["watch_log"][:100]
    print(f"[watch] {event_type}: {log_entry['file']}")

    _broadcast("file_changed", {"file": log_entry["file"], "event": event_type})

    if event_type == "deleted" or not _state["settings"].get("watch.regenerate"):
        return

    try:
        result = regenerate_file(file_path, _state["settings"], _state["project"])
    except (OSError, CommandError) as e:
        # File might be mid-edit or hold no classes
        _broadcast("regenerate_failed", {"file": log_entry["file"], "error": str(e)})
        return

    if result.changed:
        _broadcast("regenerated", {
            "file": log_entry["file"],
            "classes": [c.name for c in result.classes],
            "issues": result.issues,
        })


def _start_watcher(path: str):
    global _watcher
    if _watcher:
        _watcher.stop()
    _watcher = DartFileWatcher(_on_file_change)
    _watcher.start(path)


if __name__ == "__main__":
    project = os.environ.get("DARTFORGE_PROJECT")
    if project and os.path.isdir(project):
        project = os.path.abspath(project)
        _state["project_path"] = project
        _state["project"] = probe_project(project)
        _state["settings"] = load_settings(project)
        _start_watcher(project)
        print(f"[OK] Loaded project {_state['project'].name} from {project}")
        print(f"[OK] Watching directory: {project}")

    print(f"[OK] DartForge backend starting on http://localhost:{PORT}")
    app.run(host="0.0.0.0", port=PORT, debug=False, threaded=True)
