"""CLI entry point: main() function."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from pygit_mirror.config import build_configs, create_argument_parser, load_config_file, validate
from pygit_mirror.errors import ConfigurationError
from pygit_mirror.orchestrator import MirrorOrchestrator
from pygit_mirror.output import ConsoleOutputHandler, NullOutputHandler, Terminator
from pygit_mirror.reporter import SummaryReporter


def main(
    argv: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
    terminate: Terminator = sys.exit,
):
    """Main entry point.

    `env` defaults to the process environment and `terminate` to sys.exit;
    both are injectable so the whole run can be driven from tests.
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    env = dict(os.environ) if env is None else env

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    file_config = load_config_file(Path.cwd(), args.config)
    try:
        configs = build_configs(args, file_config, env)
    except ConfigurationError as e:
        _configuration_failed(e, args.json_output, _output_handler(args.json_output, args.debug, terminate))
        return

    debug = any(config.debug for config in configs)
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    output = _output_handler(args.json_output, debug, terminate)

    try:
        for config in configs:
            output.debug(config.pretty())
            validate(config, output)
    except ConfigurationError as e:
        _configuration_failed(e, args.json_output, output)
        return

    orchestrator = MirrorOrchestrator(output, parallel=args.parallel, max_workers=args.max_workers)

    try:
        result = orchestrator.mirror_all(configs)
    except KeyboardInterrupt:
        if not args.json_output:
            output.warning("\n\nInterrupted by user")
        terminate(130)
        return
    except Exception as e:
        if args.json_output:
            print(json.dumps({'error': str(e)}, indent=2))
        elif debug:
            import traceback
            traceback.print_exc()
        output.fatal(f"Unexpected error: {e}")
        return

    if args.json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        SummaryReporter(output).print_summary(result)

    if result.has_failures():
        output.fatal("mirror operation failed")
        return
    terminate(0)


def _output_handler(json_output: bool, debug: bool, terminate: Terminator):
    if json_output:
        return NullOutputHandler(terminate=terminate)
    return ConsoleOutputHandler(verbose=debug, terminate=terminate)


def _configuration_failed(error: ConfigurationError, json_output: bool, output) -> None:
    if json_output:
        print(json.dumps({'error': f"configuration failed: {error}"}, indent=2))
    output.fatal(f"configuration failed: {error}")
