from pathlib import Path

import numpy as np
import pytest

from nbody.snapshot import find_latest_state, load_state
from rendering.sink import FrameEmitter
from tools import simulate, validate


@pytest.mark.parametrize("text,expected", [("500", 500), ("5k", 5000), ("1.5M", 1_500_000)])
def test_parse_number(text, expected):
    assert simulate.parse_number(text) == expected


def test_physics_only_run_with_checkpoints(tmp_path, capsys):
    ckpt = tmp_path / "ckpt"
    code = simulate.main([
        "--scene", "binary_system", "-n", "30", "-f", "6", "--seed", "3",
        "--no-video", "--checkpoint-every", "3", "--checkpoint-dir", str(ckpt),
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "[Sim] Generating scene: binary_system (30 bodies)" in out
    assert "6 frames, 0 written" in out
    assert find_latest_state(ckpt)[1] == 5

    code = simulate.main(["-f", "8", "--no-video", "--resume", str(ckpt)])
    assert code == 0
    out = capsys.readouterr().out
    assert "Resuming from frame 6" in out
    assert "2 frames" in out


def test_tree_solver_run(capsys):
    assert simulate.main(["-n", "40", "-f", "2", "--solver", "tree", "--theta", "0.4", "--no-video"]) == 0
    assert "Barnes-Hut (tree, θ=0.4)" in capsys.readouterr().out


def test_missing_encoder_does_not_stop_simulation(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("rendering.sink.check_ffmpeg", lambda executable="ffmpeg": False)

    code = simulate.main(["-n", "5", "-f", "3", "--width", "64", "--height", "48",
                          "-o", str(tmp_path / "movie")])

    assert code == 0
    out = capsys.readouterr().out
    assert "[Sink] Error: FFmpeg executable not found" in out
    assert "3 frames, 0 written" in out


def test_bad_arguments():
    assert simulate.main(["-n", "lots", "--no-video"]) == 2
    assert simulate.main(["--width", "0", "-f", "1", "--no-video"]) == 2
    assert simulate.main(["--resume", "/nonexistent/ckpt"]) == 2


def test_validate_cli(tmp_path, capsys):
    out_file = tmp_path / "timings.dat"
    code = validate.main(["--levels", "3", "--offset", "8", "--divisor", "8",
                          "--theta", "0.1", "-o", str(out_file)])

    assert code == 0
    assert len(out_file.read_text().splitlines()) == 3
    assert "All levels within tolerance" in capsys.readouterr().out


def test_validate_cli_reports_failures(tmp_path):
    code = validate.main(["--levels", "2", "--offset", "16", "--divisor", "8",
                          "--mode", "tree", "--theta", "1.5", "--tolerance", "1e-12",
                          "-o", str(tmp_path / "t.dat")])
    assert code == 1


def test_resume_keeps_checkpoint_physics(tmp_path):
    common = ["--scene", "binary_system", "-n", "30", "--seed", "3", "--no-video",
              "--dt", "0.002", "--softening", "0.05", "--checkpoint-every", "3"]
    straight_dir, split_dir = tmp_path / "straight", tmp_path / "split"

    assert simulate.main(common + ["-f", "9", "--checkpoint-dir", str(straight_dir)]) == 0
    assert simulate.main(common + ["-f", "6", "--checkpoint-dir", str(split_dir)]) == 0
    # dt and softening come from the checkpoint, not the config defaults
    assert simulate.main(["-f", "9", "--no-video", "--resume", str(split_dir),
                          "--checkpoint-every", "3", "--checkpoint-dir", str(split_dir)]) == 0

    expected, expected_header = load_state(straight_dir / "state_0008.zst")
    resumed, header = load_state(split_dir / "state_0008.zst")

    assert header["dt"] == 0.002
    assert header["softening"] == 0.05
    assert header == expected_header
    np.testing.assert_array_equal(resumed.positions, expected.positions)
    np.testing.assert_array_equal(resumed.velocities, expected.velocities)


def test_resume_flag_overrides_checkpoint_dt(tmp_path):
    ckpt = tmp_path / "ckpt"
    simulate.main(["-n", "10", "-f", "3", "--dt", "0.002", "--no-video",
                   "--checkpoint-every", "3", "--checkpoint-dir", str(ckpt)])

    simulate.main(["-f", "6", "--dt", "0.004", "--no-video", "--resume", str(ckpt),
                   "--checkpoint-every", "3", "--checkpoint-dir", str(ckpt)])

    assert load_state(ckpt / "state_0005.zst")[1]["dt"] == 0.004


class RecordingSink:
    CODECS = ("mjpeg", "h264", "h265", "vp9")
    paths = []

    def open(self, path, codec, fps, width, height):
        RecordingSink.paths.append(path)

    def write_frame(self, pixels):
        pass

    def close(self):
        return 0


def test_resumed_video_does_not_overwrite_first_segment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    RecordingSink.paths = []
    indices = []

    class RecordingEmitter(FrameEmitter):
        def emit(self, frame):
            indices.append(frame.index)
            return super().emit(frame)

    monkeypatch.setattr(simulate, "FFmpegSink", RecordingSink)
    monkeypatch.setattr(simulate, "FrameEmitter", RecordingEmitter)
    video = ["--scene", "binary_system", "-n", "8", "--width", "32", "--height", "24"]

    assert simulate.main(video + ["-f", "6", "--checkpoint-every", "3", "--checkpoint-dir", "ckpt"]) == 0
    assert simulate.main(video + ["-f", "9", "--resume", "ckpt"]) == 0

    assert RecordingSink.paths == [Path("binary_system_simulation.avi"),
                                   Path("binary_system_simulation_from0006.avi")]
    assert indices == list(range(9))


def test_resume_output_path():
    assert simulate.resume_output_path(Path("out/run.mp4"), 42) == Path("out/run_from0042.mp4")
