#!/usr/bin/env python3
"""deploy-gate CLI entrypoint.

    deploy-gate run        wait for approval (the action's main step)
    deploy-gate cleanup    delete stale marker comments (the action's post step)
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from deploygate.gate.cleanup import delete_stale_markers
from deploygate.gate.engine import ApprovalOrchestrator, marker_body
from deploygate.lib import constants as c
from deploygate.lib.config import DEFAULT_CONFIG_FILE, GateConfig, load_gate_config
from deploygate.lib.context import ActionContext, load_action_context
from deploygate.lib.errors import ConfigurationError, GateError
from deploygate.lib.github import GitHubBackend, check_gh_available
from deploygate.lib.logs import configure_logging, escape_data
from deploygate.lib.outputs import write_outputs

logger = logging.getLogger("deploygate.cli")


def fail(reason: str) -> None:
    """Report the run's failure reason as an error annotation."""
    print(f"::error::{escape_data(reason)}")


def load_run_inputs(args, environ) -> tuple[GateConfig, ActionContext]:
    config = load_gate_config(
        environ,
        config_file=Path(args.config) if args.config else None,
        env_file=Path(args.env_file) if args.env_file else None,
    )
    ctx = load_action_context(environ)
    ctx.check_same_repository()
    return config, ctx


def make_backend(config: GateConfig, ctx: ActionContext, environ) -> GitHubBackend:
    token = environ.get("INPUT_GITHUB-TOKEN") or environ.get("INPUT_GITHUB_TOKEN")
    return GitHubBackend(ctx, mode=config.mode, location=config.location, token=token or None)


def cmd_run(args, environ) -> int:
    try:
        config, ctx = load_run_inputs(args, environ)
    except ConfigurationError as e:
        fail(e.reason)
        return c.EXIT_CONFIG_ERROR

    ok, message = check_gh_available()
    if not ok:
        fail(message)
        return c.EXIT_CONFIG_ERROR

    backend = make_backend(config, ctx, environ)

    try:
        run_url = backend.get_workflow_run_url() if config.mode == c.MODE_REVIEWS else ""
    except GateError as e:
        fail(e.reason)
        return c.EXIT_CONFIG_ERROR if isinstance(e, ConfigurationError) else c.EXIT_NOT_APPROVED

    logger.info(f"Checking for approval on commit: {ctx.head_sha}")
    orchestrator = ApprovalOrchestrator(
        backend,
        config,
        backend.default_location(),
        body=marker_body(config, run_url),
        commit_sha=ctx.head_sha,
    )
    try:
        result = orchestrator.execute()
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        write_outputs(orchestrator.outputs, ctx.output_path)
        fail(f"Unexpected error: {type(e).__name__}: {e}")
        return c.EXIT_NOT_APPROVED
    write_outputs(result.outputs, ctx.output_path)

    if result.approved:
        return c.EXIT_APPROVED

    fail(result.error or "Workflow was not approved")
    return c.EXIT_NOT_APPROVED


def cmd_cleanup(args, environ) -> int:
    try:
        config, ctx = load_run_inputs(args, environ)
    except ConfigurationError as e:
        # Cleanup never fails the job
        logger.warning(f"Cleanup skipped: {e.reason}")
        return 0

    backend = make_backend(config, ctx, environ)
    prefix = c.REVIEWS_MARKER_PREFIX if config.mode == c.MODE_REVIEWS else marker_body(config)

    try:
        delete_stale_markers(backend, backend.default_location(), prefix)
    except GateError as e:
        logger.warning(f"Cleanup failed: {e.reason}")
    return 0


def main(argv: list[str] | None = None, environ=None) -> int:
    parser = argparse.ArgumentParser(prog='deploy-gate', description='Manual approval gate for workflows')
    parser.add_argument('--config', help=f'YAML config file (default: {DEFAULT_CONFIG_FILE} if present)')
    parser.add_argument('--env-file', help='KEY=value config file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command')

    p_run = subparsers.add_parser('run', help='Publish the marker and wait for approval')
    p_run.set_defaults(func=cmd_run)

    p_cleanup = subparsers.add_parser('cleanup', help='Delete stale marker comments')
    p_cleanup.set_defaults(func=cmd_cleanup)

    args = parser.parse_args(argv)
    environ = os.environ if environ is None else environ

    verbose = args.verbose or environ.get("RUNNER_DEBUG") == "1"
    configure_logging(verbose=verbose)

    func = getattr(args, "func", cmd_run)
    return func(args, environ)


if __name__ == '__main__':
    sys.exit(main())
