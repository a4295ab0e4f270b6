from __future__ import annotations

import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from compasshud.core.logging import init_logging
from compasshud.runtime.service import CompassRuntime, FrameInput
from compasshud.poi import PointOfInterest


def create_app(runtime: Optional[CompassRuntime] = None) -> Flask:
    app = Flask(__name__, static_folder=None)
    if runtime is None:
        runtime = CompassRuntime(logger=init_logging(level=os.environ.get("LOG_LEVEL", "INFO")))
    rt = runtime
    logger = rt.logger
    app.config["RUNTIME"] = rt

    @app.get("/api/status")
    def api_status():
        return jsonify(rt.snapshot())

    @app.get("/api/timeline")
    def api_timeline():
        try:
            n = int(request.args.get("n", 50))
        except (TypeError, ValueError):
            n = 50
        return jsonify({"events": rt.timeline.last(n)})

    @app.get("/api/pois")
    def api_pois():
        return jsonify({"pois": rt.pois()})

    @app.post("/api/pois")
    def api_register_poi():
        data: Dict[str, Any] = request.get_json(force=True, silent=True) or {}
        try:
            poi = PointOfInterest(
                data.get("type"),
                data.get("position"),
                base_position=data.get("base"),
                height=data.get("height"),
                poi_id=data.get("id"),
            )
        except (TypeError, ValueError) as exc:
            return jsonify({"ok": False, "error": str(exc)}), 400
        if not rt.register_poi_unique(poi):
            return jsonify({"ok": False, "error": f"POI already registered: {poi.poi_id}"}), 409
        logger.info("api/pois | id=%s type=%s", poi.poi_id, data.get("type"))
        return jsonify({"ok": True, "poi": poi.to_dict()}), 201

    @app.delete("/api/pois/<poi_id>")
    def api_unregister_poi(poi_id: str):
        if not rt.unregister_poi_id(poi_id):
            return jsonify({"ok": False, "error": f"Unknown POI: {poi_id}"}), 404
        logger.info("api/pois delete | id=%s", poi_id)
        return jsonify({"ok": True})

    @app.post("/api/tick")
    def api_tick():
        data: Dict[str, Any] = request.get_json(force=True, silent=True) or {}
        try:
            frame = FrameInput.from_dict(data)
        except (TypeError, ValueError) as exc:
            return jsonify({"ok": False, "error": str(exc)}), 400
        return jsonify({"ok": True, "status": rt.tick(frame)})

    return app


def main() -> None:
    host = os.environ.get("COMPASSHUD_HOST", "127.0.0.1")
    port = int(os.environ.get("COMPASSHUD_PORT", "8084"))
    app = create_app()
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
