"""
Command-line entry point: redact faces and licence plates in photos.

Usage:
    python src/main.py --config config/config.yaml photo.jpg [more.jpg ...]

Arguments:
    --config: Path to configuration file
    --output-dir: Where redacted images are written (default: next to input)
    --preload: Load detector models before the first image
    --json: Print per-image summaries as JSON lines
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import cv2

from models.buffer import PixelBuffer
from models.config import Config
from ops.config import ConfigError, load_config, validate_config
from ops.logging import setup_logging
from pipeline.engine import PrivacyPipeline, create_pipeline_from_config


def output_path_for(input_path: str, output_dir: Optional[str]) -> str:
    """`photo.jpg` -> `photo_redacted.jpg`, in output_dir when given."""
    stem, ext = os.path.splitext(os.path.basename(input_path))
    target_dir = output_dir if output_dir else os.path.dirname(input_path)
    return os.path.join(target_dir, f"{stem}_redacted{ext or '.png'}")


def redact_file(
    pipeline: PrivacyPipeline,
    input_path: str,
    output_dir: Optional[str] = None,
    blur_faces: bool = True,
    blur_plates: bool = True,
) -> Optional[dict]:
    """
    Redact one image file and write the result.

    Returns the summary dict, or None when the image could not be read or written.
    """
    frame = cv2.imread(input_path, cv2.IMREAD_UNCHANGED)
    if frame is None:
        logging.error(f"Could not read image: {input_path}")
        return None

    buffer = PixelBuffer.from_bgr(frame)
    summary = pipeline.apply_privacy_protection(buffer, blur_faces=blur_faces, blur_plates=blur_plates)

    out_path = output_path_for(input_path, output_dir)
    out_dir = os.path.dirname(out_path)
    if out_dir and not os.path.exists(out_dir):
        os.makedirs(out_dir)
    if not cv2.imwrite(out_path, buffer.to_bgr()):
        logging.error(f"Could not write image: {out_path}")
        return None

    result = summary.to_dict()
    result["input"] = input_path
    result["output"] = out_path
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    parser = argparse.ArgumentParser(description="Road hazard photo privacy redaction")
    parser.add_argument("inputs", nargs="+", help="Image files to redact")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Directory for redacted images")
    parser.add_argument("--preload", action="store_true",
                        help="Load detector models before processing")
    parser.add_argument("--json", action="store_true",
                        help="Print summaries as JSON lines")
    parser.add_argument("--no-faces", action="store_true",
                        help="Do not blur faces or heads")
    parser.add_argument("--no-plates", action="store_true",
                        help="Do not blur licence plates")
    args = parser.parse_args(argv)

    try:
        raw_config = load_config(args.config)
    except ConfigError as e:
        logging.error(str(e))
        return 1

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info(f"Starting privacy redaction for {len(args.inputs)} image(s)")

    pipeline = create_pipeline_from_config(config)
    if args.preload:
        pipeline.preload()

    failures = 0
    for path in args.inputs:
        result = redact_file(
            pipeline,
            path,
            output_dir=args.output_dir,
            blur_faces=not args.no_faces,
            blur_plates=not args.no_plates,
        )
        if result is None:
            failures += 1
            continue
        if args.json:
            print(json.dumps(result))
        else:
            print(
                f"{result['output']}: faces={result['faces_detected']} people={result['people_detected']} "
                f"vehicles={result['vehicles_detected']} plates={result['plates_detected']} "
                f"blurred={result['total_blurred']}"
            )

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
