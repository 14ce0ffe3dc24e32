import argparse
import logging
from dataclasses import replace

import cv2

from rtmdet_kit import PreprocessConfig, SegPostConfig, draw_detections, load_pipeline, load_run_config


def main() -> int:
    parser = argparse.ArgumentParser(description="Run RTMDet-Ins on an image and visualize masks + boxes.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default="Models/rtmdetins_s_640.onnx", help="Path to a model (.onnx/.pt/.ptl).")
    parser.add_argument("--labels", default="Models/classes.txt", help="Class names file (one per line).")
    parser.add_argument("--config", default=None, help="Optional JSON run config (preprocess/postprocess).")
    parser.add_argument("--imgsz", type=int, default=None, help="Inference size S (overrides config).")
    parser.add_argument("--conf", type=float, default=None, help="Common confidence threshold (overrides config).")
    parser.add_argument("--person-conf", type=float, default=None, help="Person confidence threshold (overrides config).")
    parser.add_argument("--class-nms", action="store_true", help="Run strict same-class NMS before merging.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output image path for the visualization.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG shows stage timings).")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if args.config:
        pre_cfg, post_cfg = load_run_config(args.config)
    else:
        pre_cfg, post_cfg = PreprocessConfig(), SegPostConfig()

    if args.imgsz is not None:
        pre_cfg = replace(pre_cfg, infer_size=int(args.imgsz))
    if args.conf is not None:
        post_cfg = replace(post_cfg, common_threshold=float(args.conf))
    if args.person_conf is not None:
        post_cfg = replace(post_cfg, person_threshold=float(args.person_conf))
    if args.class_nms:
        post_cfg = replace(post_cfg, class_nms=True)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(
        model_path=args.model,
        labels_path=args.labels,
        backend=args.backend,
        preprocess_cfg=pre_cfg,
        post_cfg=post_cfg,
        onnx_providers=onnx_providers,
    )

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    detections = pipeline(img)
    for det in detections:
        print(det.label, round(det.score, 3), det.as_xyxy())

    vis = draw_detections(img, detections, show_score=True)
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
