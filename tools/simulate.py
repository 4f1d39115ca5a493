"""
N-Body Frame Simulator
======================

Simulates one of the built-in scenes and encodes every frame to a video.

Usage:
    python -m tools.simulate                                 # Defaults from config/nbody.py
    python -m tools.simulate --scene solar_system -n 500     # Scene and body count
    python -m tools.simulate --solver tree --theta 0.6       # Barnes-Hut forces
    python -m tools.simulate --no-video                      # Physics only
    python -m tools.simulate --checkpoint-every 50           # Write resumable state
    python -m tools.simulate --resume checkpoints            # Resume from latest state

Scenes:
    random        - Uniform cube of light bodies
    spiral_galaxy - Central mass with a thin spiral disk
    binary_system - Two stars with drifting planets
    solar_system  - Sun, nine planets and debris
"""

import argparse
import sys
from pathlib import Path

from config import nbody as config
from nbody import (
    BarnesHutSolver, ForceEvaluator, ForceMode, NumericInstability, Scene,
    Simulation, generate,
)
from nbody.snapshot import CheckpointPolicy, find_latest_state, load_state
from rendering import FFmpegSink, FrameEmitter, FrameProjector, RenderConfig


def parse_number(value: str) -> int:
    """Parse number with optional suffix (k, m, K, M)."""
    value = value.strip().lower()
    multipliers = {'k': 1_000, 'm': 1_000_000}

    for suffix, mult in multipliers.items():
        if value.endswith(suffix):
            return int(float(value[:-1]) * mult)

    return int(value)


def build_parser() -> argparse.ArgumentParser:
    sim = config.SIMULATION
    parser = argparse.ArgumentParser(
        description="Simulate N gravitating bodies and render the frames to video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", type=str, default=sim["scene"],
                        help=f"Scene: {', '.join(s.value for s in Scene)} (default: {sim['scene']})")
    parser.add_argument("--bodies", "-n", type=str, default=str(sim["count"]),
                        help="Number of bodies (e.g., 1000, 5k)")
    parser.add_argument("--frames", "-f", type=int, default=sim["frames"], help="Number of frames")
    parser.add_argument("--dt", type=float,
                        help=f"Time step (default: {sim['dt']}, or the checkpoint's on --resume)")
    parser.add_argument("--seed", type=int, default=sim["seed"], help="Random seed for scene generation")
    parser.add_argument("--G", type=float,
                        help=f"Gravitational constant (default: {sim['G']}, or the checkpoint's on --resume)")
    parser.add_argument("--softening", type=float,
                        help=f"Softening length (default: {sim['softening']}, or the checkpoint's on --resume)")

    parser.add_argument("--solver", type=str, default=sim["solver"],
                        choices=[m.value for m in ForceMode], help="Force solver")
    parser.add_argument("--theta", type=float, help="Barnes-Hut opening angle")

    # Video settings
    parser.add_argument("--width", type=int, help="Frame width")
    parser.add_argument("--height", type=int, help="Frame height")
    parser.add_argument("--fps", type=int, help="Output FPS")
    parser.add_argument("--max-scale", type=float, help="Maximum zoom (pixels per unit)")
    parser.add_argument("--codec", type=str, choices=list(FFmpegSink.CODECS), help="Video codec")
    parser.add_argument("-o", "--output", type=str, help="Output path (default: <scene>_simulation)")
    parser.add_argument("--no-video", action="store_true", help="Skip rendering and encoding")

    # Checkpoints
    parser.add_argument("--checkpoint-every", type=int, default=config.CHECKPOINT["every"],
                        metavar="FRAMES", help="Save state every N frames (0 = never)")
    parser.add_argument("--checkpoint-dir", type=str, default=config.CHECKPOINT["directory"],
                        help="Directory for state checkpoints")
    parser.add_argument("--resume", type=str, metavar="DIR",
                        help="Resume from the latest checkpoint in DIR")
    return parser


def _make_evaluator(args) -> ForceEvaluator:
    mode = ForceMode(args.solver)
    accelerator = None
    if mode != ForceMode.DIRECT:
        accelerator = BarnesHutSolver(theta=args.theta, G=args.G, softening=args.softening)
        print(f"[Sim] Using Barnes-Hut ({mode.value}, θ={accelerator.theta_for(mode)})")
    else:
        print("[Sim] Using direct summation")
    return ForceEvaluator(G=args.G, softening=args.softening, mode=mode, accelerator=accelerator)


def _resolve_physics(args, header: dict):
    """Fill dt/G/softening left unset on the command line: checkpoint first, then config."""
    sim = config.SIMULATION
    for name in ("dt", "G", "softening"):
        if getattr(args, name) is None:
            setattr(args, name, float(header.get(name, sim[name])))


def resume_output_path(path: Path, start_frame: int) -> Path:
    """Video path for a resumed run, so the earlier segment is never overwritten."""
    return path.with_name(f"{path.stem}_from{start_frame:04d}{path.suffix}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        num_bodies = parse_number(args.bodies)
    except ValueError:
        print(f"[Sim] Invalid bodies value: {args.bodies}")
        return 2

    scene = Scene.parse(args.scene)
    start_frame = 0
    header = {}

    if args.resume:
        state_file, state_frame = find_latest_state(args.resume)
        if state_file is None:
            print(f"[Sim] No checkpoint found in {args.resume}")
            return 2
        store, header = load_state(state_file)
        scene = Scene.parse(header.get("scene") or scene)
        start_frame = state_frame + 1
        print(f"[Sim] Resuming from frame {start_frame} ({state_file})")

    _resolve_physics(args, header)

    if not args.resume:
        print(f"[Sim] Generating scene: {scene.value} ({num_bodies:,} bodies)")
        store = generate(scene, num_bodies, G=args.G, seed=args.seed)

    try:
        render_config = RenderConfig.from_config(
            width=args.width, height=args.height, fps=args.fps,
            max_scale=args.max_scale, codec=args.codec, output_target=args.output,
        )
    except ValueError as e:
        print(f"[Sim] Error: {e}")
        return 2

    evaluator = _make_evaluator(args)
    simulation = Simulation(store, evaluator, args.dt, scene=scene.value)

    checkpoint = None
    if args.checkpoint_every > 0:
        checkpoint = CheckpointPolicy(Path(args.checkpoint_dir), args.checkpoint_every)

    output_path = render_config.output_path(scene.value)
    if start_frame > 0 and args.output is None:
        output_path = resume_output_path(output_path, start_frame)
        if not args.no_video:
            print(f"[Sim] Resumed frames {start_frame}-{args.frames - 1} go to {output_path}")

    projector = None
    emitter = FrameEmitter(FFmpegSink(), render_config, output_path)
    if not args.no_video:
        projector = FrameProjector(render_config)

    print(f"[Sim] Frames: {args.frames}, dt={args.dt}, bodies={store.num_bodies:,}")

    try:
        with emitter:
            summary = simulation.run(
                args.frames,
                projector=projector,
                emitter=emitter if projector is not None else None,
                start_frame=start_frame,
                checkpoint=checkpoint,
            )
    except NumericInstability as e:
        print(f"[Sim] Fatal: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n[Sim] Interrupted")
        if checkpoint is not None:
            print(f"[Sim] To resume: python -m tools.simulate --resume {checkpoint.directory}")
        return 130

    print(f"[Sim] ✓ Simulation complete! {summary.frames} frames, "
          f"{summary.emitted} written, {summary.elapsed:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
