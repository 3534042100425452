"""
main.py — command line entry point for cubescan
===============================================

Sub-commands:
 - `scan IMAGE`     run the face perception pipeline on an image file and print
                    the detected grid, per-cell confidence and alignment score.
                    `--calibrate` first rebalances colors for the scene lighting.
 - `apply MOVES`    apply a move sequence to the solved cube (or to a state
                    read from a JSON file) and print the unfolded net and JSON.
 - `scramble`       print a random scramble.

Debug logging is explicitly opt-in (`--debug`).

------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Optional, Sequence

from cubescan.capture import FaceAnalyzer, capture_instruction, is_acceptable, load_region_detector
from cubescan.cube_state import CubeState
from cubescan.errors import CubeScanError
from cubescan.frame import Frame
from cubescan.moves import apply_sequence, format_sequence, random_scramble

logger = logging.getLogger("cubescan")


def create_arg_parser() -> argparse.ArgumentParser:
    """
    Build and return the CLI argument parser.
    """
    p = argparse.ArgumentParser(prog="cubescan", description="Cube face scanner and move engine", allow_abbrev=False)
    p.add_argument("--debug", action="store_true", help="Enable verbose logging.")
    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Detect the 3x3 colors of one face in an image.")
    scan.add_argument("image", type=Path)
    scan.add_argument("--face-index", type=int, default=0, help="Capture step 0..5 (front, back, up, down, left, right).")
    scan.add_argument("--mirror", action="store_true", help="Image is mirrored (selfie camera).")
    scan.add_argument("--max-side", type=int, default=960, help="Downscale images larger than this.")
    scan.add_argument("--no-region", dest="region", action="store_false", help="Always use the centered grid.")
    scan.add_argument("--calibrate", action="store_true", help="Rebalance colors from the lighting over the grid first.")
    scan.add_argument("--json", action="store_true", help="Print the capture as JSON.")

    apply_p = sub.add_parser("apply", help="Apply a move sequence and print the resulting state.")
    apply_p.add_argument("moves", help="Moves separated by spaces, e.g. \"R U R' U'\".")
    apply_p.add_argument("--state", type=Path, help="JSON file with a starting state (default: solved).")

    scramble = sub.add_parser("scramble", help="Print a random scramble.")
    scramble.add_argument("--length", type=int, default=25)
    scramble.add_argument("--seed", type=int)

    return p


def _cmd_scan(args) -> int:
    frame = Frame.load(args.image, max_side=args.max_side)
    analyzer = FaceAnalyzer(region_detector=load_region_detector(args.region))
    bounds = analyzer.grid_bounds(frame)
    if args.calibrate:
        analyzer.calibrate(frame, bounds)
    capture = analyzer.analyze(frame, args.face_index, mirrored=args.mirror, bounds=bounds)
    accepted = is_acceptable(capture)

    if args.json:
        data = capture.to_dict()
        data['accepted'] = accepted
        print(json.dumps(data, indent=2))
        return 0

    print(f"{capture.face} ({capture_instruction(capture.face_index)})")
    for r, row in enumerate(capture.grid.cells):
        cells = [f"{color.value:>7} {capture.classifications[r][c].confidence:4.0%}" for c, color in enumerate(row)]
        print("  " + " | ".join(cells))
    print(f"valid: {capture.valid_detections}/9  score: {capture.score} ({capture.score_band})"
          f"  accepted: {'yes' if accepted else 'no'}")
    for note in capture.corrections:
        print(f"  corrected: {note}")
    for warning in capture.warnings:
        print(f"  warning: {warning}")
    return 0


def _cmd_apply(args) -> int:
    state = CubeState.from_json(args.state.read_text()) if args.state else CubeState.solved()
    result = apply_sequence(state, args.moves)
    print(result.net())
    print(result.to_json())
    return 0


def _cmd_scramble(args) -> int:
    rng = random.Random(args.seed)
    print(format_sequence(random_scramble(args.length, rng)))
    return 0


_COMMANDS = {
    "scan": _cmd_scan,
    "apply": _cmd_apply,
    "scramble": _cmd_scramble,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point. Returns an integer exit code:
    0 ok, 1 domain error (bad move, incomplete state ...), 2 missing input file.
    """
    args = create_arg_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if args.debug:
        logger.debug("Debug mode enabled.")

    try:
        return _COMMANDS[args.command](args)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 2
    except CubeScanError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
