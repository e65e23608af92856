"""
NavPilot Provider Application
=============================

Runs the NavPilot-711C provider plugin on an in-memory host, optionally
with a simulated NavPilot on the bus and the REST API served over HTTP.

Usage:
    python -m navpilot.main --simulate --serve --port 3000
    python -m navpilot.main --settings settings.json --log-level DEBUG
"""

import argparse
import json
import logging
import signal
import sys
import time
from pathlib import Path

from .host import LoopbackHost
from .plugin import NavPilotPlugin
from .server import create_app
from .simulation import NavPilotSimulator, NavPilotSimConfig

logger = logging.getLogger(__name__)


def load_settings(path: str) -> dict:
    """Load plugin settings (camelCase keys) from a JSON file."""
    with open(Path(path)) as f:
        return json.load(f)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Furuno NavPilot-711C autopilot provider")
    parser.add_argument("--device-id", help="Autopilot device ID (overrides settings)")
    parser.add_argument("--settings", help="JSON settings file")
    parser.add_argument("--simulate", action="store_true",
                        help="Attach a simulated NavPilot to the bus")
    parser.add_argument("--sim-rate", type=float, default=1.0,
                        help="Simulator PGN rate (Hz)")
    parser.add_argument("--serve", action="store_true", help="Serve the REST API")
    parser.add_argument("--host", default="127.0.0.1", help="REST bind address")
    parser.add_argument("--port", type=int, default=3000, help="REST port")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = load_settings(args.settings) if args.settings else {}
    if args.device_id:
        settings["deviceId"] = args.device_id

    host = LoopbackHost()
    plugin = NavPilotPlugin(host)
    try:
        plugin.start(settings)
    except Exception as e:
        logger.error(f"Failed to start provider: {e}")
        return 1

    simulator = None
    if args.simulate:
        simulator = NavPilotSimulator(host, NavPilotSimConfig(update_rate_hz=args.sim_rate))
        simulator.start()

    def shutdown(signum=None, frame=None):
        logger.info("Shutting down...")
        if simulator:
            simulator.stop()
        plugin.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    if args.serve:
        app = create_app(plugin.provider)
        logger.info(f"Serving autopilot API on http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, threaded=True)
        shutdown()
    else:
        while True:
            time.sleep(1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
