"""
Command line entry point.

Normalizes an OBJ mesh to the center and fits it within the unit box (or the
unit sphere), or within another mesh's frame. OFF files are converted to OBJ
without normalizing.

Example:
    meshnorm -s bunny.obj -m centroid -o bunny_unit.obj
    meshnorm -s chair.obj -t table.obj --in-place
    meshnorm -s cube.off -o cube.obj
"""
import argparse
import logging
import sys
from contextlib import ExitStack
from typing import Iterator, List, Optional

from meshnorm.config import DEFAULT_METHOD, OFF_EXTENSION
from meshnorm.errors import MeshError
from meshnorm.logging_config import setup_logging
from meshnorm.mesh import OffMesh
from meshnorm.normalize import NormalizeKind, normalize

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meshnorm",
        description="Normalize an OBJ mesh to the center and fit it within the unit box, "
                    "or within another mesh's bounding box. OFF files are converted to OBJ.")
    parser.add_argument("-s", "--src", required=True, help="Mesh to normalize (OBJ) or convert (OFF)")
    parser.add_argument("-m", "--method", type=NormalizeKind, choices=list(NormalizeKind),
                        default=NormalizeKind(DEFAULT_METHOD),
                        help="Fix the AABB, or the average of all the vertices (default: %(default)s)")
    parser.add_argument("-t", "--target", help="Mesh whose frame the source is normalized to, if any")
    parser.add_argument("-o", "--output", help="Output file name (stdout when no output is given)")
    parser.add_argument("--in-place", action="store_true",
                        help="Overwrite the source file (can be combined with --output)")
    parser.add_argument("--replace-positions", action="store_true",
                        help="If target and src have the same number of vertices, directly replace src's "
                             "vertex positions with target's")
    parser.add_argument("--check-indices", action=argparse.BooleanOptionalAction, default=True,
                        help="Reject OFF faces that reference missing vertices (default: on)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug information")
    parser.add_argument("--log-file", help="Also write the log to this file")
    return parser.parse_args(argv)


def build_lines(args: argparse.Namespace) -> Iterator[str]:
    if args.src.lower().endswith(OFF_EXTENSION):
        logger.info("Converting %s to obj without normalizing...", args.src)
        return OffMesh(args.src, check_indices=args.check_indices).obj_lines()

    logger.info("Normalizing %s (%s)%s", args.src, args.method,
                " to {}".format(args.target) if args.target else "")
    return normalize(args.src, args.target, args.method, args.replace_positions)


def write_lines(lines: Iterator[str], paths: List[str]) -> None:
    with ExitStack() as stack:
        if paths:
            sinks = [stack.enter_context(open(p, 'w', encoding='utf-8')) for p in paths]
        else:
            sinks = [sys.stdout]
        for line in lines:
            for sink in sinks:
                sink.write(line + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    # the source is opened last so a bad --output path cannot truncate it
    out_paths = []
    if args.output:
        out_paths.append(args.output)
    if args.in_place:
        out_paths.append(args.src)

    try:
        # inputs are fully read and validated here, before any sink is truncated
        lines = build_lines(args)
        write_lines(lines, out_paths)
    except MeshError as e:
        logger.error("%s: %s", args.src, e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1

    if out_paths:
        logger.info("Wrote %s", ", ".join(out_paths))
    return 0


if __name__ == "__main__":
    sys.exit(main())
