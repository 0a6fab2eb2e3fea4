#!/usr/bin/env python3
"""clif: show the resolved toolkit configuration, optionally following changes"""

import argparse
import signal
import threading
from dataclasses import dataclass

from .configuration import (
    Configuration,
    init_config,
    with_app_name,
    with_config_dir,
    with_config_file,
    with_dotenv,
    with_interval,
    with_wait_group,
    without_watch,
)
from .core.cancel_token import CancelToken
from .core.errors import ConfigurationError
from .core.wait_group import WaitGroup
from .logger import apply_level, setup_logging
from .platform_utils import IS_WINDOWS, get_platform_info


@dataclass
class ToolSettings:
    core: Configuration | None = None


class Clif:
    """Main application - resolve configuration and report it"""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.settings = ToolSettings()
        self.token = CancelToken()
        self.wait_group = WaitGroup()
        self._shutdown_event = threading.Event()

    def _options(self) -> list:
        args = self.args
        options = [with_wait_group(self.wait_group), with_interval(args.interval)]
        if args.app_name:
            options.append(with_app_name(args.app_name))
        if args.config:
            options.append(with_config_file(args.config))
        if args.config_dir:
            options.append(with_config_dir(args.config_dir))
        if args.dotenv:
            options.append(with_dotenv(args.dotenv))
        if not args.watch:
            options.append(without_watch())
        return options

    def on_change(self, name: str, value) -> None:
        print(f"↻ {name} = {value!r}")
        core = self.settings.core
        if core.logger is not None:
            apply_level(core.logger)

    def run(self) -> int:
        """Run the application"""
        try:
            core = init_config(self.token, self.settings, *self._options())
        except ConfigurationError as e:
            print(f"Error: {e}")
            return 1

        setup_logging(core.logger)
        meta = core.metadata
        info = get_platform_info()

        print("\n" + "=" * 50)
        print(f"🔧 {meta.app_name}")
        print("=" * 50)
        print(f"Platform: {info['system']} {info['release']} (Python {info['python_version']})")
        print(f"User: {meta.user or '?'}  Home: {meta.home_dir}")
        print(f"Config file: {meta.config_path or 'none found'}")
        print(f"Logger: level={core.logger.level} colorized={core.logger.colorized}")
        print(f"Console: {core.console.width}x{core.console.height}")

        if not self.args.watch:
            print("=" * 50 + "\n")
            return 0

        for env_key in core.monitored_settings():
            core.add_notify_on_change(env_key, self.on_change)
        print(f"Watching: {', '.join(core.monitored_settings()) or 'nothing'}")
        print("Press Ctrl+C to quit")
        print("=" * 50 + "\n")

        try:
            self._shutdown_event.wait()
        except KeyboardInterrupt:
            pass

        self.shutdown()
        return 0

    def shutdown(self):
        """Clean shutdown"""
        print("\nShutting down...")
        self.token.cancel()
        self.wait_group.wait(timeout=5.0)
        print("✓ Done")

    def request_shutdown(self):
        """Request application shutdown (thread-safe)"""
        self._shutdown_event.set()


def positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show the resolved clif configuration")
    parser.add_argument("--app-name", help="Application name (environment prefix)")
    parser.add_argument("--config", help="Configuration file (YAML or JSON)")
    parser.add_argument("--config-dir", help="Per-user configuration location")
    parser.add_argument("--dotenv", help="dotenv file layered under the environment")
    parser.add_argument("--interval", type=positive_float, default=5.0, help="Environment poll interval (s)")
    parser.add_argument("--watch", action="store_true", help="Follow changes until interrupted")
    return parser


def main(argv=None) -> int:
    app = Clif(build_parser().parse_args(argv))

    def signal_handler(sig, frame):
        app.request_shutdown()

    # Register signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    if not IS_WINDOWS:
        signal.signal(signal.SIGTERM, signal_handler)

    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
