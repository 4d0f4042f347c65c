"""Flask application factory for the py-memsim web API.

``create_app`` wraps one simulation and returns a Flask app whose
endpoints expose everything a front end needs to draw a memory map and
drive the clock:

- ``GET /api/state`` — blocks, processes, holes, stats, clock state.
- ``GET /api/logs`` — recent log entries, newest first.
- ``POST /api/processes`` — submit one process (optional ``address``).
- ``POST /api/processes/import`` — submit a batch of loosely-typed rows.
- ``DELETE /api/processes/<pid>`` — terminate a process.
- ``POST /api/simulation/<action>`` — start, pause, resume, reset, tick.
- ``PUT /api/simulation/speed`` / ``PUT /api/simulation/technique``.
- ``PUT /api/memory`` — resize the address space.
- ``POST /api/compare`` — compare techniques over a batch.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from flask import Flask, Response, jsonify, request

from py_memsim.batch import parse_records
from py_memsim.comparison import compare_techniques
from py_memsim.memory.placement import parse_technique
from py_memsim.simulation import Simulation

_HTTP_CREATED = 201
_HTTP_BAD_REQUEST = 400
_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409


def _int_field(data: dict[str, Any], *keys: str, default: int | None = None) -> int:
    """Read an integer from the first present key.

    Raises:
        ValueError: If the field is missing (with no default) or not an integer.

    """
    for key in keys:
        if key in data and data[key] is not None:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int | str):
                msg = f"'{key}' must be an integer"
                raise ValueError(msg)
            try:
                return int(value)
            except ValueError:
                msg = f"'{key}' must be an integer"
                raise ValueError(msg) from None
    if default is None:
        msg = f"Missing '{keys[0]}' field"
        raise ValueError(msg)
    return default


def create_app(simulation: Simulation | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        simulation: The simulation to expose; a fresh one if omitted.

    Returns:
        A configured Flask application ready to serve.

    """
    sim = simulation or Simulation()
    app = Flask(__name__)

    @app.route("/api/state")
    def state() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the full simulation state."""
        return jsonify(sim.snapshot())

    @app.route("/api/logs")
    def logs() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return log entries, newest first (``?limit=`` to truncate)."""
        entries = sim.logs
        limit = request.args.get("limit", type=int)
        if limit is not None:
            entries = entries[: max(limit, 0)]
        return jsonify({"logs": [e.to_dict() for e in entries]})

    @app.route("/api/processes", methods=["POST"])
    def add_process() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Submit one process.

        Expects JSON body: ``{"name", "size", "burst_time", "arrival_time"?, "address"?}``.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Expected a JSON object"}), _HTTP_BAD_REQUEST
        try:
            size = _int_field(data, "size")
            burst_time = _int_field(data, "burst_time", "burstTime")
            arrival_time = _int_field(data, "arrival_time", "arrivalTime", default=sim.current_time)
            address = _int_field(data, "address") if data.get("address") is not None else None
            name = str(data.get("name") or f"P{len(sim.processes) + 1}")
            process = sim.add_process(
                name=name,
                size=size,
                burst_time=burst_time,
                arrival_time=arrival_time,
                address=address,
            )
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        if process is None:
            return jsonify({"error": f"Address {address} is not available"}), _HTTP_CONFLICT
        return jsonify(process.to_dict()), _HTTP_CREATED

    @app.route("/api/processes/import", methods=["POST"])
    def import_processes() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Submit a batch: ``{"processes": [...]}`` or a bare list."""
        data = request.get_json(silent=True)
        rows = data.get("processes") if isinstance(data, dict) else data
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            return jsonify({"error": "Expected a list of process objects"}), _HTTP_BAD_REQUEST
        imported = sim.import_processes(parse_records(rows))
        return jsonify({"processes": [p.to_dict() for p in imported]}), _HTTP_CREATED

    @app.route("/api/processes/<int:pid>", methods=["DELETE"])
    def terminate(pid: int) -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Terminate a running or waiting process."""
        if sim.get_process(pid) is None:
            return jsonify({"error": f"No process {pid}"}), _HTTP_NOT_FOUND
        return jsonify({"terminated": sim.terminate(pid)})

    actions: dict[str, Callable[[], object]] = {
        "start": sim.start,
        "pause": sim.pause,
        "resume": sim.resume,
        "reset": sim.reset,
        "tick": sim.tick,
    }

    @app.route("/api/simulation/<action>", methods=["POST"])
    def control(action: str) -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Apply a clock transition."""
        handler = actions.get(action)
        if handler is None:
            return jsonify({"error": f"Unknown action '{action}'"}), _HTTP_NOT_FOUND
        try:
            handler()
        except RuntimeError as e:
            return jsonify({"error": str(e)}), _HTTP_CONFLICT
        return jsonify(sim.snapshot())

    @app.route("/api/simulation/speed", methods=["PUT"])
    def set_speed() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Change the milliseconds per tick: ``{"speed": 500}``."""
        data = request.get_json(silent=True) or {}
        try:
            sim.set_speed(_int_field(data, "speed", "speed_ms"))
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        return jsonify({"speed_ms": sim.speed_ms})

    @app.route("/api/simulation/technique", methods=["PUT"])
    def set_technique() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Change the placement technique: ``{"technique": "best-fit"}``."""
        data = request.get_json(silent=True) or {}
        try:
            technique = parse_technique(str(data.get("technique", "")))
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        sim.set_technique(technique)
        return jsonify({"technique": str(technique)})

    @app.route("/api/memory", methods=["PUT"])
    def resize() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Resize memory: ``{"total_memory": 2048}``."""
        data = request.get_json(silent=True) or {}
        try:
            new_total = _int_field(data, "total_memory", "totalMemory")
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        if not sim.change_total_memory(new_total):
            return jsonify({"error": f"Cannot resize memory to {new_total} KB"}), _HTTP_CONFLICT
        return jsonify({"total_memory": sim.total_memory})

    @app.route("/api/compare", methods=["POST"])
    def compare() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Compare techniques over a batch (defaults to the current processes)."""
        data = request.get_json(silent=True)
        rows = data.get("processes") if isinstance(data, dict) else data
        if rows is None:
            specs = [p.spec for p in sim.processes]
        elif isinstance(rows, list) and all(isinstance(r, dict) for r in rows):
            specs = parse_records(rows)
        else:
            return jsonify({"error": "Expected a list of process objects"}), _HTTP_BAD_REQUEST
        results = compare_techniques(specs, total_memory=sim.total_memory)
        return jsonify({"results": [m.to_dict() for m in results]})

    return app


def main(*, port: int = 8080, debug: bool = False) -> None:
    """Run the web API development server.

    This is the ``py-memsim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=debug, port=port)
