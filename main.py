#!/usr/bin/env python3
"""
Vision Tasks - Main User Application

This is the main entry point for all user applications in the system.
"""

import sys
import argparse


def main():
    """Main application entry point"""
    parser = argparse.ArgumentParser(
        description="Vision Tasks - Main Application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Available Applications:
  inference        Run SSD detection or selfie segmentation on images
  presets          List the available task presets

Examples:
  python main.py inference --help
  python main.py inference --model-path ssd.tflite --input-image street.jpg
  python main.py inference --task selfie_segmentation --model-path selfie.tflite --input-dir photos
  python main.py presets
        """
    )

    parser.add_argument(
        "application",
        choices=["inference", "presets"],
        help="Application to run"
    )

    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments to pass to the selected application"
    )

    args = parser.parse_args()

    # Route to appropriate application
    if args.application == "inference":
        from vision_tasks.inference import main as inference_main
        sys.argv = ["inference.py"] + args.args
        return inference_main()

    elif args.application == "presets":
        from vision_tasks.config import get_task_configs
        for name, config in get_task_configs().items():
            print(f"{name}: {config['task']} {config['width']}x{config['height']} "
                  f"{config['input_dtype']} (delegate: {config['delegate']})")
        return 0


if __name__ == "__main__":
    sys.exit(main())
