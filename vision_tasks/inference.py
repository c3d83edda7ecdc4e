#!/usr/bin/env python3
"""
Main Inference Script for Vision Tasks
Runs SSD detection or selfie segmentation over images and saves the results
"""
import sys
import cv2
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional
import argparse
from datetime import datetime
import logging
import json

from vision_tasks.base_task import BaseVisionTask
from vision_tasks.config import get_task_configs, load_labels, load_task_config
from vision_tasks.post_processing import PostProcessor
from vision_tasks.selfie_segmentation import SegmentationOptions, SelfieSegmentation
from vision_tasks.ssd import SSD, SSDOptions

IMAGE_PATTERNS = ['*.jpg', '*.jpeg', '*.png', '*.JPG', '*.JPEG', '*.PNG']


def create_task(model_path: str, task_config: Dict) -> BaseVisionTask:
    """Create the task a configuration describes"""
    if task_config['task'] == 'ssd':
        return SSD(SSDOptions.from_config(model_path, task_config))
    if task_config['task'] == 'segmentation':
        return SelfieSegmentation(SegmentationOptions.from_config(model_path, task_config))
    raise ValueError(f"Unknown task type: {task_config['task']}")


class VisionTaskInference:
    """Complete inference pipeline for one task"""

    def __init__(self, model_path: str, task_config: Dict,
                 labels_path: Optional[str] = None,
                 device: Optional[str] = None,
                 task: Optional[BaseVisionTask] = None):
        self.model_path = model_path
        self.task_config = dict(task_config)
        if device:
            self.task_config['delegate'] = device

        self._setup_logging()

        self.labels = load_labels(labels_path) if labels_path else None
        self.post_processor = PostProcessor()
        self.task = task if task is not None else create_task(model_path, self.task_config)

        self.logger.info(f"{self.task_config['task']} inference pipeline initialized")

    def _setup_logging(self):
        """Setup logging configuration"""
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

    def load_image(self, image_path: str) -> np.ndarray:
        """Load an image file as RGB"""
        image = cv2.imread(str(image_path))
        if image is None:
            raise ValueError(f"Could not load image: {image_path}")
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    def run(self, image: np.ndarray):
        """Invoke the task on a top-left RGB image"""
        # Tasks take display orientation (bottom-left origin)
        self.task.invoke(np.ascontiguousarray(np.flipud(image)))

    def texture_to_image_mask(self, texture: np.ndarray, width: int, height: int) -> np.ndarray:
        """Map a result texture back onto the source image"""
        labels = self.post_processor.texture_to_mask(texture)
        mask = self.task.sampler.to_source(labels, width, height)
        return np.ascontiguousarray(np.flipud(mask))

    def process_image(self, image: np.ndarray, output_dir: str, filename: str,
                      threshold: Optional[float] = None) -> Dict:
        """Process an RGB image and save the results"""
        if threshold is None:
            threshold = self.task_config.get('threshold', 0.5)

        self.run(image)

        if isinstance(self.task, SSD):
            results = self.task.get_results()
            saved_paths = self.post_processor.save_detection_results(
                image, results, output_dir, filename, self.labels, threshold
            )
            return {
                'task': 'ssd',
                'results': results,
                'num_detections': len(self.post_processor.filter_results(results, threshold)),
                'saved_paths': saved_paths
            }

        height, width = image.shape[:2]
        mask_texture = self.task.get_result_texture()
        filtered_mask = self.texture_to_image_mask(mask_texture, width, height)
        raw_mask = self.texture_to_image_mask(self.task.label_tex.array, width, height)

        saved_paths = self.post_processor.save_segmentation_results(
            image, raw_mask, filtered_mask, output_dir, filename
        )
        return {
            'task': 'segmentation',
            'mask': filtered_mask,
            'metrics': saved_paths['metrics'],
            'saved_paths': saved_paths
        }

    def process_single_image(self, image_path: str, output_dir: str,
                             threshold: Optional[float] = None) -> Dict:
        """Process a single image file"""
        self.logger.info(f"Processing image: {image_path}")

        image = self.load_image(image_path)
        results = self.process_image(image, output_dir, Path(image_path).stem, threshold)

        self.logger.info(f"Processing completed for {image_path}")
        return results

    def process_batch(self, image_dir: str, output_dir: str,
                      threshold: Optional[float] = None) -> List[Dict]:
        """Process every image in a directory"""
        self.logger.info(f"Processing batch from directory: {image_dir}")

        image_path = Path(image_dir)
        image_files = []
        for ext in IMAGE_PATTERNS:
            image_files.extend(image_path.glob(ext))
        image_files = sorted(set(image_files))

        if not image_files:
            raise ValueError(f"No image files found in {image_dir}")

        self.logger.info(f"Found {len(image_files)} images to process")

        results = []
        for i, image_file in enumerate(image_files):
            self.logger.info(f"Processing {i+1}/{len(image_files)}: {image_file.name}")

            try:
                image = self.load_image(str(image_file))
            except ValueError as e:
                self.logger.error(f"Skipping {image_file}: {e}")
                continue

            result = self.process_image(image, output_dir, image_file.stem, threshold)
            result['filename'] = image_file.name
            results.append(result)

        self.logger.info(f"Batch processing completed. {len(results)} images processed successfully.")
        return results

    def create_summary_report(self, results: List[Dict], output_dir: str) -> str:
        """Create a summary report of batch processing"""
        summary = {
            'timestamp': datetime.now().isoformat(),
            'task': self.task_config['task'],
            'total_images_processed': len(results),
            'images': []
        }

        for result in results:
            entry = {'filename': result.get('filename')}
            if result['task'] == 'ssd':
                entry['num_detections'] = result['num_detections']
            else:
                entry['foreground_percentage'] = result['metrics']['foreground_percentage']
            summary['images'].append(entry)

        if results and self.task_config['task'] == 'ssd':
            summary['average_detections'] = float(np.mean([r['num_detections'] for r in results]))
        elif results:
            summary['average_foreground_percentage'] = float(
                np.mean([r['metrics']['foreground_percentage'] for r in results]))

        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        summary_path = output_path / "processing_summary.json"
        with open(summary_path, 'w') as f:
            json.dump(summary, f, indent=2)

        self.logger.info(f"Summary report saved to {summary_path}")
        return str(summary_path)

    def close(self):
        self.task.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def main():
    """Main function for command-line usage"""
    parser = argparse.ArgumentParser(description="Vision Task Inference Pipeline")
    parser.add_argument("--model-path", required=True, help="Path to .tflite or TorchScript model")
    parser.add_argument("--task", default="ssd_mobilenet_v1", choices=sorted(get_task_configs()),
                        help="Task preset")
    parser.add_argument("--config", help="JSON file overriding the preset")
    parser.add_argument("--labels", help="Labels file, one label per line")
    parser.add_argument("--input-image", help="Path to input image")
    parser.add_argument("--input-dir", help="Directory containing input images")
    parser.add_argument("--output-dir", default="inference_results", help="Output directory")
    parser.add_argument("--threshold", type=float, help="Detection score threshold")
    parser.add_argument("--device", choices=["cpu", "gpu"], help="Delegate to use")

    args = parser.parse_args()

    if not args.input_image and not args.input_dir:
        print("Please provide either --input-image or --input-dir")
        return 1

    try:
        task_config = load_task_config(args.task, args.config)
        pipeline = VisionTaskInference(args.model_path, task_config, args.labels, args.device)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    with pipeline:
        if args.input_image:
            results = pipeline.process_single_image(args.input_image, args.output_dir, args.threshold)
            if results['task'] == 'ssd':
                print(f"Detections: {results['num_detections']}")
            else:
                print(f"Foreground: {results['metrics']['foreground_percentage']:.2f}%")
        else:
            results = pipeline.process_batch(args.input_dir, args.output_dir, args.threshold)
            summary_path = pipeline.create_summary_report(results, args.output_dir)
            print(f"Batch processing completed. Summary saved to {summary_path}")

    print("Inference pipeline completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
