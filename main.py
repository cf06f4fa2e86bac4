import argparse
import os
import sys
import traceback

from util.config import Config, manage_config
from util.logger import Logger
from util.orchestrator import PulsarrOrchestrator
from util.version import get_version


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Run Pulsarr delete sync once or on its schedule."
    )
    parser.add_argument(
        "modules", nargs="*", help="Module names to run once (CLI mode)."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be deleted without deleting anything.",
    )
    parser.add_argument("--version", action="version", version=get_version())
    return parser.parse_args(argv)


def main():
    args = parse_args()
    if args.dry_run:
        os.environ["DRY_RUN"] = "true"
    if args.modules:
        os.environ["LOG_TO_CONSOLE"] = "true"
        try:
            orchestrator = PulsarrOrchestrator(None)
            orchestrator.run(args)
        except Exception as e:
            print(f"[PULSARR] FATAL exception in main(): {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)
    else:
        os.environ["LOG_TO_CONSOLE"] = "false"
        logger = None
        main_config = None
        try:
            main_config = Config("general")
            logger = Logger(
                getattr(main_config, "log_level", "INFO"), main_config.module_name
            )
            config_logger = logger.get_adapter({"source": "CONFIG"})
            manage_config(config_logger)
            orchestrator = PulsarrOrchestrator(logger)
            orchestrator.run(args)
        except Exception as e:
            msg = f"[PULSARR] FATAL exception in main(): {e}"
            print(msg, file=sys.stderr)
            traceback.print_exc()
            if not logger:
                fallback_module = getattr(main_config, "module_name", "general")
                logger = Logger("INFO", fallback_module)
            logger.error(msg, exc_info=True)
            sys.exit(1)


if __name__ == "__main__":
    main()
