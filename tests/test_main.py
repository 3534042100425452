import json

import cv2
import numpy as np

from conftest import centered_face_frame

from cubescan.config import CANONICAL_RGB
from cubescan.cube_state import CubeState
from cubescan.main import create_arg_parser, main
from cubescan.moves import apply_sequence, parse_sequence


def _write_face(path, names):
    frame = centered_face_frame([CANONICAL_RGB[n] for n in names])
    cv2.imwrite(str(path), cv2.cvtColor(frame.rgb, cv2.COLOR_RGB2BGR))
    return path


def test_parser_reads_scan_options():
    parser = create_arg_parser()
    args = parser.parse_args(["scan", "img.png", "--face-index", "3", "--mirror"])
    assert args.command == "scan" and args.face_index == 3 and args.mirror


def test_scramble_command(capsys):
    assert main(["scramble", "--length", "7", "--seed", "5"]) == 0
    tokens = capsys.readouterr().out.split()
    assert len(tokens) == 7
    assert parse_sequence(tokens)


def test_scramble_is_seeded(capsys):
    main(["scramble", "--seed", "9"])
    first = capsys.readouterr().out
    main(["scramble", "--seed", "9"])
    assert capsys.readouterr().out == first


def test_apply_command_prints_net_and_json(capsys):
    assert main(["apply", "R U R' U'"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    state = CubeState.from_json(lines[-1])
    assert state == apply_sequence(CubeState.solved(), "R U R' U'")
    assert len(lines) == 10


def test_apply_command_reads_state_file(tmp_path, capsys):
    start = apply_sequence(CubeState.solved(), "F")
    path = tmp_path / "state.json"
    path.write_text(start.to_json())
    assert main(["apply", "F'", "--state", str(path)]) == 0
    assert CubeState.from_json(capsys.readouterr().out.strip().splitlines()[-1]) == CubeState.solved()


def test_apply_command_rejects_bad_moves():
    assert main(["apply", "R X"]) == 1


def test_apply_command_rejects_partial_state(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"up": [["white"] * 3] * 3}))
    assert main(["apply", "U", "--state", str(path)]) == 1


def test_scan_command_json(tmp_path, capsys):
    names = ['red', 'white', 'blue', 'orange', 'green', 'yellow', 'blue', 'red', 'white']
    image = _write_face(tmp_path / "face.png", names)
    assert main(["scan", str(image), "--face-index", "2", "--no-region", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["face"] == "up"
    assert [c for row in data["grid"] for c in row] == names
    assert data["accepted"] is True
    assert data["score"] >= 95


def test_scan_command_text(tmp_path, capsys):
    image = _write_face(tmp_path / "face.png", ['green'] * 9)
    assert main(["scan", str(image), "--no-region"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("front")
    assert "accepted: yes" in out
    assert "warning: only 1 unique colors detected" in out


def test_scan_command_calibrate(tmp_path, capsys):
    image = tmp_path / "warm.png"
    cv2.imwrite(str(image), np.full((480, 640, 3), (140, 210, 250), dtype=np.uint8))  # BGR warm white

    assert main(["scan", str(image), "--no-region", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["grid"] == [["orange"] * 3] * 3

    assert main(["scan", str(image), "--no-region", "--json", "--calibrate"]) == 0
    assert json.loads(capsys.readouterr().out)["grid"] == [["white"] * 3] * 3


def test_scan_command_missing_image(tmp_path):
    assert main(["scan", str(tmp_path / "missing.png")]) == 2


def test_scan_command_bad_face_index(tmp_path):
    image = _write_face(tmp_path / "face.png", ['green'] * 9)
    assert main(["scan", str(image), "--face-index", "8"]) == 1
