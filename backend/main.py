"""
Fan Control command line entry point.

Runs the web backend (default), the bare control loop (--no-web), or a one
shot diagnostic read of every device (--debug).
"""

import argparse
import os
import sys

import log_config  # noqa: F401
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.fancontrol.control_service import build_service
from core.fancontrol.exceptions import ConfigurationError
from core.fancontrol.settings import load_settings


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Furnace blower and ceiling fan controller.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
Examples:
  python main.py                       # web backend + control loop on :8080
  python main.py --no-web              # control loop only
  python main.py -d                    # print one raw read per device and exit
  python main.py --config my.yaml      # use a specific config file
""",
    )
    parser.add_argument("--config", help="Path to a YAML or JSON config file")
    parser.add_argument("-d", "--debug", action="store_true",
                        help="Fetch debug data from every device and exit")
    parser.add_argument("--no-web", action="store_true",
                        help="Run the control loop in the foreground without the web API")
    parser.add_argument("--host", default="0.0.0.0", help="Web server host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Web server port (default: 8080)")
    return parser.parse_args(argv)


def print_debug(service) -> None:
    """Print one raw read per actuator."""
    print("Fetching Debug data")
    for result in service.debug():
        if result.error:
            print(f"{result.name} ({result.url}): {result.error}\n")
        else:
            print(f"{result.name} ({result.url}) response: {result.status_code}\n{result.body}\n")


def main(argv: list[str] | None = None) -> int:
    """Main execution function."""
    args = parse_arguments(argv)

    if args.no_web or args.debug:
        try:
            settings = load_settings(args.config)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return 1

        service = build_service(settings)
        try:
            if args.debug:
                print_debug(service)
            else:
                service.run_forever()
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            service.close()
        return 0

    import uvicorn

    if args.config:
        # Picked up by the app's lifespan
        os.environ["FANCONTROL_CONFIG"] = args.config
    uvicorn.run("app:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
