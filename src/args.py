"""Argument parsing functionality for plydep."""

import argparse

from constants import Constants


def build_parser():
    """Builds the argument parser."""
    parser = argparse.ArgumentParser(
        prog="plydep",
        description="plydep - transitive dependency resolution for ply-style builds",
        add_help=True,
    )

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-L", "--local-repo",
                        dest="LOCAL_REPO",
                        help="Local repository (path or file:// URI, optional ::type)",
                        action="store",
                        type=str)
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Remote repository atom uri[::ply|maven]; may be repeated",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-d", "--dependency",
                        dest="DEPENDENCIES",
                        help="Dependency atom namespace:name:version[:artifact][:transient]; may be repeated",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-x", "--exclude",
                        dest="EXCLUSIONS",
                        help="Exclude namespace:name (or a full atom) from resolution; may be repeated",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--fail-missing",
                        dest="FAIL_MISSING",
                        help="Fail when any dependency cannot be found.",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="{resolve,classpath,tree}")
    subparsers.required = True

    resolve = subparsers.add_parser("resolve", help="Resolve dependencies into the local repository")
    resolve.add_argument("-o", "--output",
                         dest="OUTPUT",
                         help="Write resolved-deps properties to this path (default: %(const)s)",
                         nargs="?",
                         const=Constants.RESOLVED_DEPS_FILE,
                         action="store",
                         type=str)

    classpath = subparsers.add_parser("classpath", help="Print the resolved classpath")
    classpath.add_argument("-a", "--artifact",
                           dest="ARTIFACT",
                           help="The project's own artifact, placed first on the classpath",
                           action="store",
                           type=str)

    subparsers.add_parser("tree", help="Print the dependency tree")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
