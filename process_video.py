"""
process_video.py: Run rt-slic on a video file or a camera
Usage:
    python3 process_video.py --input path/to/video.mp4 --output out.mp4
    python3 process_video.py --input 0 --show          # first camera

While showing:
    Press R to drop the cluster state (next frame starts from fresh seeds)
    Press Q to quit
"""

import argparse
import json
import logging
import cv2
import numpy as np

from rt_slic import (
    SuperpixelPipeline, load_config,
    fill_superpixels, draw_cluster_contours, draw_cluster_centres, plot_convergence,
)

# ── Args ──────────────────────────────────────────────────────────────────────

parser = argparse.ArgumentParser()
parser.add_argument("--input",      required=True,     help="Video path or camera index")
parser.add_argument("--config",     default="slic",    help="Config name in config/ or a yaml path")
parser.add_argument("--output",     default=None,      help="Optional output video path")
parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = all)")
parser.add_argument("--centres",    action="store_true", help="Draw cluster centres")
parser.add_argument("--show",       action="store_true", help="Display frames in a window")
parser.add_argument("--plot",       default=None,      help="Save a convergence plot to this path")
parser.add_argument("--verbose",    action="store_true")
args = parser.parse_args()

logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.WARNING,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

cfg = load_config(args.config)
pipeline = SuperpixelPipeline(cfg)
session  = pipeline.new_session()
print(f"[process_video] step={cfg.sampling_step}  weight={cfg.spatial_weight}  "
      f"mode={cfg.video_mode.name}  convergence={cfg.convergence.name}")

source  = int(args.input) if args.input.isdigit() else args.input
capture = cv2.VideoCapture(source)
if not capture.isOpened():
    raise FileNotFoundError(f"Could not open video source: {args.input}")

writer    = None
histories = []
n_frames  = 0

while True:
    ok, frame = capture.read()
    if not ok:
        break

    lab    = cv2.cvtColor(frame, cv2.COLOR_BGR2Lab)
    result = pipeline.process(lab, session)
    histories.append(result.report.residual_history)

    filled = fill_superpixels(lab, result.labels, result.colors)
    canvas = cv2.cvtColor(filled, cv2.COLOR_Lab2BGR)
    draw_cluster_contours(canvas, result.labels, (0, 0, 255))
    if args.centres:
        draw_cluster_centres(canvas, result.positions, (255, 0, 0))

    if args.output:
        if writer is None:
            fps = capture.get(cv2.CAP_PROP_FPS) or 25.0
            h, w = canvas.shape[:2]
            writer = cv2.VideoWriter(args.output, cv2.VideoWriter_fourcc(*"mp4v"), fps, (w, h))
        writer.write(canvas)

    n_frames += 1
    if args.verbose:
        print(f"[process_video] frame {result.frame_index}: {result.clusters_number} clusters  "
              f"{result.report.iterations} passes  error={result.residual_error:.3f}  "
              f"{result.timing['total'] * 1000:.1f} ms")

    if args.show:
        cv2.imshow("rt-slic", canvas)
        key = cv2.waitKey(1) & 0xFF
        if key == ord('q'):
            print("[process_video] quit.")
            break
        if key == ord('r'):
            session.reset()
            print("[process_video] state reset.")

    if args.max_frames and n_frames >= args.max_frames:
        break

capture.release()
if writer is not None:
    writer.release()
    print(f"[process_video] saved → {args.output}")
if args.show:
    cv2.destroyAllWindows()

if args.plot:
    plot_convergence(histories, threshold=cfg.error_threshold, save_path=args.plot)
    print(f"[process_video] convergence plot → {args.plot}")

print(f"[process_video] {n_frames} frames")
print(json.dumps(session.stats.as_dict(), indent=2))
