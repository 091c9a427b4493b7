"""Command-line entrypoint for the SV consensus merge."""
from __future__ import annotations

import argparse
import datetime
import logging
import os
import sys
from pathlib import Path

from . import merging, postprocess, validation
from .clusters import ClusterTable
from .grouping import load_groups
from .logging_utils import (
    LOG_FILE,
    MergeSVError,
    configure_logging,
    log_message,
)
from .settings import DEFAULT_MIN_SUPPORT, DEFAULT_SVMETHOD, MergeSettings


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("Value must be at least 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sv_merge",
        description="Merge per-sample structural-variant VCFs into consensus calls per cluster.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge = subparsers.add_parser(
        "merge",
        help="Stream the input VCFs once and write one consensus record per cluster.",
    )
    merge.add_argument("file_list", help="Text file listing the input VCFs, one per line, in sample order.")
    merge.add_argument("groups", help="Tab-separated cluster grouping: cluster, sample index, record ID.")
    merge.add_argument("output", help="Path of the merged VCF to write.")
    merge.add_argument(
        "--min-support",
        type=_positive_int,
        default=DEFAULT_MIN_SUPPORT,
        help="Minimum number of supporting samples for a cluster to be written.",
    )
    merge.add_argument(
        "--use-strand",
        action="store_true",
        help="Strands were part of the grouping key; keep STRANDS instead of blanking it.",
    )
    merge.add_argument(
        "--use-type",
        action="store_true",
        help="SV types were part of the grouping key; keep SVTYPE instead of blanking it.",
    )
    merge.add_argument("--svmethod", default=DEFAULT_SVMETHOD, help="Value stamped into INFO/SVMETHOD.")
    merge.add_argument("--validate", action="store_true", help="Re-read the merged VCF with vcfpy when done.")
    merge.add_argument("--compress", action="store_true", help="BGZF-compress the merged VCF when done.")
    merge.add_argument("--log-file", dest="log_file", help=f"Log file path. Defaults to {LOG_FILE} next to the output.")
    merge.add_argument("-v", "--verbose", action="store_true", help="Verbose console logging.")

    restore = subparsers.add_parser(
        "restore-dups",
        help="Convert merged insertions marked OLDTYPE=DUP back into duplications.",
    )
    restore.add_argument("input", help="Merged VCF to rewrite.")
    restore.add_argument("output", help="Path of the rewritten VCF.")
    restore.add_argument("-v", "--verbose", action="store_true", help="Verbose console logging.")
    return parser


def parse_arguments(argv=None):
    """Parse CLI args for the SV merge tool."""
    args = _build_parser().parse_args(argv)
    if args.command == "merge":
        args.output = str(Path(args.output))
        if not args.log_file:
            args.log_file = os.path.join(os.path.dirname(os.path.abspath(args.output)), LOG_FILE)
    return args


def run_merge(args) -> str:
    """Run the merge subcommand and return the path of the final output."""
    verbose = args.verbose
    configure_logging(
        log_level=logging.DEBUG if verbose else logging.INFO,
        log_file=args.log_file,
        enable_file_logging=True,
        enable_console=verbose,
    )
    log_message("Script Execution Log - " + datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    settings = MergeSettings.from_namespace(args)
    log_message(
        f"Settings: min_support={settings.min_support}, use_strand={settings.use_strand}, "
        f"use_type={settings.use_type}, svmethod={settings.svmethod}"
    )

    input_files = validation.check_input_files(merging.read_file_list(args.file_list), verbose)
    groups = load_groups(args.groups, verbose)
    table = ClusterTable.build(groups, len(input_files), settings, verbose=verbose)

    out_dir = os.path.dirname(os.path.abspath(args.output))
    os.makedirs(out_dir, exist_ok=True)
    merging.merge_sv_files(input_files, table, args.output, settings, verbose=verbose)

    final_path = args.output
    if args.validate:
        validation.validate_merged_vcf(final_path, verbose=verbose)
    if args.compress:
        final_path = validation.compress_output(final_path, verbose=verbose)
    log_message(f"Script execution completed successfully. Final merged VCF: {final_path}", verbose)
    return final_path


def run_restore_dups(args) -> str:
    configure_logging(
        log_level=logging.DEBUG if args.verbose else logging.INFO,
        enable_file_logging=False,
        enable_console=True,
    )
    postprocess.convert_insertions_to_duplications(args.input, args.output, verbose=args.verbose)
    return args.output


def main(argv=None):
    args = parse_arguments(argv)
    try:
        if args.command == "merge":
            final_path = run_merge(args)
        else:
            final_path = run_restore_dups(args)
    except MergeSVError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    print(f"Wrote: {final_path}")


if __name__ == "__main__":  # pragma: no cover - entry point
    main()
