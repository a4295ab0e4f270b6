import argparse
import json
import os
import sys
from typing import Any, Dict, Optional

from compasshud.core.config import Config
from compasshud.core.logging import init_logging
from compasshud.runtime.service import CompassRuntime


def _format_row(name: str, slots) -> str:
    parts = []
    for slot in slots:
        if not slot.get("active"):
            continue
        subs = ",".join(sorted(slot.get("sub_icons") or {}))
        arrow = {"up": "^", "down": "v"}.get(slot.get("elevation") or "", "")
        parts.append(
            f"{slot['poi']}@x={slot['x']:.1f},y={slot['y']:.1f} {slot.get('distance') or ''}{arrow}"
            + (f" [{subs}]" if subs else "")
        )
    return f"  {name:<5}: " + (" | ".join(parts) if parts else "-")


def simulate(scene_path: str, frames: Optional[int] = None, config_dir: Optional[str] = None, as_json: bool = False) -> int:
    config = Config(config_dir) if config_dir else Config()
    try:
        scene = config.load_scene(scene_path)
    except FileNotFoundError as exc:
        print(str(exc))
        return 2
    logger = init_logging(level=os.environ.get("LOG_LEVEL", "WARNING"), to_file=False)
    rt = CompassRuntime(config, logger=logger)
    inputs = rt.load_scene(scene)
    if frames is not None:
        inputs = inputs[: max(0, frames)]
    if not inputs:
        print("Scene has no frames")
        return 1
    status: Dict[str, Any] = {}
    for index, frame in enumerate(inputs):
        status = rt.tick(frame)
        if as_json:
            continue
        compass = status["compass"]
        print(f"frame {index}: heading={compass['heading_deg']:.1f}deg band={status['band']['uv_x']:.3f}")
        rows = status["hud"]["rows"]
        print(_format_row("above", rows["above"]))
        print(_format_row("below", rows["below"]))
    if as_json:
        print(json.dumps(status, indent=2))
    warnings = [e for e in rt.timeline.last(200) if e["level"] != "info"]
    for event in warnings:
        print(f"{event['level']}: {event['label']} {event['data'].get('poi', '')} {event['data'].get('message', '')}")
    return 0


def main():
    ap = argparse.ArgumentParser(description="Compass HUD utilities")
    ap.add_argument("--simulate", dest="scene", help="Run a scripted scene (YAML with pois + frames)")
    ap.add_argument("--frames", type=int, default=None, help="Only run the first N frames of the scene")
    ap.add_argument("--config-dir", dest="config_dir", default=None, help="Directory holding compass/poi/icons/slots.yml")
    ap.add_argument("--json", action="store_true", help="Print the final status as JSON instead of per-frame rows")
    ap.add_argument("--serve", action="store_true", help="Start the status API server")
    args = ap.parse_args()

    if args.scene:
        return simulate(args.scene, args.frames, args.config_dir, args.json)
    if args.serve:
        if args.config_dir:
            os.environ["COMPASSHUD_CONFIG_DIR"] = args.config_dir
        from compasshud.ui.server import main as serve

        serve()
        return 0
    ap.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
