"""
Executor launcher entrypoint.

Run with: python3 -m launchpad [--spec launch.yaml]

Without --spec the launch parameters are read from the handoff environment
written by the parent launcher:
    MESOS_FRAMEWORK_ID, MESOS_EXECUTOR_ID, MESOS_COMMAND, MESOS_EXECUTOR_URIS,
    MESOS_USER, MESOS_WORK_DIRECTORY, MESOS_SLAVE_PID, MESOS_HADOOP_HOME,
    MESOS_REDIRECT_IO, MESOS_SWITCH_USER, MESOS_CONTAINER
"""
import argparse
import logging
import os
import sys
from pathlib import Path

from launchpad.config import get_config
from launchpad.environment import spec_from_handoff_environment
from launchpad.launch_spec import LaunchSpec
from launchpad.launcher import EXIT_FAILURE, ExecutorLauncher


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Fetch resources for and launch a cluster executor')
    parser.add_argument(
        '--spec',
        type=Path,
        default=None,
        help='Launch spec YAML file (default: read the MESOS_* handoff environment)'
    )
    parser.add_argument(
        '--setup-only',
        action='store_true',
        help='Fetch resources into the working directory and exit without launching'
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr
    )


def main(argv=None) -> int:
    """Build the launch spec, run the launcher and return its exit status."""
    args = parse_args(argv)
    config = get_config()
    setup_logging(config.log_level)

    try:
        if args.spec is not None:
            spec = LaunchSpec.from_yaml(args.spec)
        else:
            spec = spec_from_handoff_environment(os.environ, frameworks_home=config.frameworks_home)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Invalid launch spec: {e}", file=sys.stderr)
        return EXIT_FAILURE

    launcher = ExecutorLauncher(spec, config=config)

    if args.setup_only:
        ret = launcher.setup()
    else:
        ret = launcher.run()

    return EXIT_FAILURE if ret < 0 else ret


if __name__ == "__main__":
    sys.exit(main())
