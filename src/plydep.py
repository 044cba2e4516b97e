"""plydep - transitive dependency resolution for ply-style builds.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from args import parse_args
from cli_config import build_config
from common.http_client import Transport
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from dep.models import ConfigError, CyclicDependencyError, DependencyNotFoundError
from dep.report import classpath_string, render_tree, write_resolved_properties
from dep.repos import build_registry, parse_atoms
from dep.resolver import DependencyResolver

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Route the CLI log level (and optional log file) into the root logger."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()
    if getattr(args, "LOG_FILE", None):
        handler = logging.FileHandler(args.LOG_FILE, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def run(args) -> int:
    """Execute the selected subcommand; return an exit code value."""
    try:
        config = build_config(args)
        registry = build_registry(config.local_repo, config.repositories, config.synthetic)
        roots = parse_atoms(config.dependencies)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return ExitCodes.FILE_ERROR.value

    if not roots:
        logger.warning("No dependencies to resolve.")

    transport = Transport(timeout=config.request_timeout)
    try:
        with DependencyResolver(registry, transport, config.fail_missing, config.exclusions) as resolver:
            report = resolver.resolve_all(roots)
    except CyclicDependencyError as exc:
        logger.error("%s", exc)
        if exc.path:
            logger.error("Path: %s", " -> ".join(dep.version_string for dep in exc.path))
        return ExitCodes.CYCLE_ERROR.value
    except DependencyNotFoundError as exc:
        logger.error("%s", exc)
        return ExitCodes.CONNECTION_ERROR.value
    except OSError as exc:
        logger.error("Could not write to the local repository: %s", exc)
        return ExitCodes.FILE_ERROR.value
    finally:
        transport.close()

    if args.COMMAND == "classpath":
        print(classpath_string(report.resolved, getattr(args, "ARTIFACT", None)))
    elif args.COMMAND == "tree":
        print(render_tree(report))
    else:
        for dep in report.resolved.values():
            print(f"{dep.atom.canonical()} {dep.path}")
        if getattr(args, "OUTPUT", None):
            try:
                write_resolved_properties(report, args.OUTPUT)
            except OSError as exc:
                logger.error("Could not write %s: %s", args.OUTPUT, exc)
                return ExitCodes.FILE_ERROR.value

    for atom, error in report.errors.items():
        logger.warning("Error resolving %s: %s", atom, error)
    if report.has_warnings:
        logger.warning("Resolution completed with warnings.")
        if args.ERROR_ON_WARNINGS:
            logger.error("Warnings present, exiting with non-zero status code.")
            return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )
    code = run(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action=args.COMMAND,
                                outcome="success" if code == ExitCodes.SUCCESS.value else "failure")
        )
    sys.exit(code)


if __name__ == "__main__":
    main()
