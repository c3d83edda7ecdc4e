#!/usr/bin/env python3
"""
Post-processing Utilities for Vision Tasks
Unpacks raw model outputs and renders results for display
"""
import cv2
import numpy as np
from dataclasses import dataclass, asdict
from typing import Dict, List, Tuple, Optional, Sequence
import matplotlib.pyplot as plt
from pathlib import Path
import json
from datetime import datetime

# Set matplotlib backend for non-interactive use
import matplotlib
matplotlib.use('Agg')


@dataclass
class Rect:
    """Normalized rectangle in display space (origin bottom-left)"""
    x: float
    y: float
    width: float
    height: float


@dataclass
class DetectionResult:
    class_id: int
    score: float
    rect: Rect

    def to_dict(self) -> Dict:
        return asdict(self)


def unpack_detections(boxes: np.ndarray, classes: np.ndarray,
                      scores: np.ndarray) -> List[DetectionResult]:
    """
    Convert SSD outputs into detection results.

    boxes holds (top, left, bottom, right) rows normalized to the model input.
    The vertical axis is flipped so the rect lives in display space. Every
    row becomes a result; low scores are left for the caller to filter.
    """
    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    classes = np.asarray(classes, dtype=np.float32).reshape(-1)
    scores = np.asarray(scores, dtype=np.float32).reshape(-1)

    count = len(boxes)
    if len(classes) != count or len(scores) != count:
        raise ValueError(f"Output sizes differ: boxes={count}, classes={len(classes)}, scores={len(scores)}")

    results = []
    for i in range(count):
        # Invert Y for display space
        top = 1.0 - float(boxes[i, 0])
        left = float(boxes[i, 1])
        bottom = 1.0 - float(boxes[i, 2])
        right = float(boxes[i, 3])

        results.append(DetectionResult(
            class_id=int(classes[i]),
            score=float(scores[i]),
            rect=Rect(left, top, right - left, top - bottom),
        ))
    return results


def unpack_segmentation(output: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Copy a [H, W, 1] label tensor into a flat row-major float32 buffer"""
    flat = np.asarray(output, dtype=np.float32).reshape(-1)
    if out is None:
        return flat.copy()

    if out.size != flat.size:
        raise ValueError(f"Label buffer has {out.size} values, output has {flat.size}")
    np.copyto(out.reshape(-1), flat)
    return out


class PostProcessor:
    """Display helpers for detection and segmentation results"""

    def filter_results(self, results: Sequence[DetectionResult],
                       threshold: float = 0.5) -> List[DetectionResult]:
        """Keep results whose score reaches the threshold"""
        return [r for r in results if r.score >= threshold]

    def rect_to_pixels(self, rect: Rect, width: int, height: int) -> Tuple[int, int, int, int]:
        """Convert a display-space rect to (x0, y0, x1, y1) pixels of a top-left image"""
        x0 = int(round(rect.x * width))
        x1 = int(round((rect.x + rect.width) * width))
        y0 = int(round((1.0 - rect.y) * height))
        y1 = int(round((1.0 - rect.y + rect.height) * height))
        return x0, y0, x1, y1

    def draw_detections(self, image: np.ndarray, results: Sequence[DetectionResult],
                        labels: Optional[Sequence[str]] = None,
                        threshold: float = 0.5,
                        color: Tuple[int, int, int] = (0, 255, 0),
                        thickness: int = 2) -> np.ndarray:
        """Draw boxes and captions for results above the threshold"""
        output = image.copy()
        height, width = output.shape[:2]

        for result in self.filter_results(results, threshold):
            x0, y0, x1, y1 = self.rect_to_pixels(result.rect, width, height)
            cv2.rectangle(output, (x0, y0), (x1, y1), color, thickness)

            name = self.label_name(result.class_id, labels)
            caption = f"{name}: {int(result.score * 100)}%"
            cv2.putText(output, caption, (x0, max(y0 - 5, 12)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)
        return output

    def label_name(self, class_id: int, labels: Optional[Sequence[str]] = None) -> str:
        if labels and 0 <= class_id < len(labels):
            return labels[class_id]
        return str(class_id)

    def texture_to_mask(self, texture: np.ndarray) -> np.ndarray:
        """Read the mask channel of a display-space texture as a top-left image"""
        return np.ascontiguousarray(np.flipud(texture[..., 0]))

    def create_mask_overlay(self, image: np.ndarray, mask: np.ndarray,
                            alpha: float = 0.6,
                            color: Tuple[int, int, int] = (0, 255, 0)) -> np.ndarray:
        """Blend a uint8 mask onto the image, weighting by mask intensity"""
        if mask.shape[:2] != image.shape[:2]:
            mask = cv2.resize(mask, (image.shape[1], image.shape[0]))

        weight = (mask.astype(np.float32) / 255.0)[..., np.newaxis] * alpha
        colored = np.empty_like(image, dtype=np.float32)
        colored[...] = color

        overlay = image.astype(np.float32) * (1.0 - weight) + colored * weight
        return np.clip(overlay, 0, 255).astype(np.uint8)

    def calculate_mask_metrics(self, mask: np.ndarray, threshold: int = 127) -> Dict:
        """Calculate coverage metrics of a uint8 mask"""
        total_pixels = int(mask.shape[0] * mask.shape[1])
        foreground_pixels = int(np.sum(mask > threshold))

        return {
            'total_pixels': total_pixels,
            'foreground_pixels': foreground_pixels,
            'foreground_percentage': (foreground_pixels / total_pixels) * 100 if total_pixels else 0.0,
            'mean_confidence': float(mask.mean() / 255.0) if total_pixels else 0.0
        }

    def create_comparison_visualization(self, image: np.ndarray,
                                        raw_mask: np.ndarray,
                                        filtered_mask: np.ndarray,
                                        save_path: Optional[str] = None) -> np.ndarray:
        """Show image, raw labels, filtered mask and overlay side by side (RGB image)"""
        overlay = self.create_mask_overlay(image, filtered_mask)

        fig, axes = plt.subplots(1, 4, figsize=(20, 5))

        axes[0].imshow(image)
        axes[0].set_title('Input Image')

        axes[1].imshow(raw_mask, cmap='gray', vmin=0, vmax=255)
        axes[1].set_title('Raw Labels')

        axes[2].imshow(filtered_mask, cmap='gray', vmin=0, vmax=255)
        axes[2].set_title('Filtered Mask')

        axes[3].imshow(overlay)
        axes[3].set_title('Overlay')

        for ax in axes:
            ax.axis('off')

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return overlay

    def save_detection_results(self, image: np.ndarray,
                               results: Sequence[DetectionResult],
                               output_dir: str, filename: str,
                               labels: Optional[Sequence[str]] = None,
                               threshold: float = 0.5) -> Dict:
        """Save detections as JSON plus an overlay image (RGB image)"""
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        overlay = self.draw_detections(image, results, labels, threshold)
        overlay_path = output_path / f"{filename}_detections.png"
        cv2.imwrite(str(overlay_path), cv2.cvtColor(overlay, cv2.COLOR_RGB2BGR))

        detections = []
        for result in results:
            entry = result.to_dict()
            entry['label'] = self.label_name(result.class_id, labels)
            detections.append(entry)

        results_path = output_path / f"{filename}_results.json"
        with open(results_path, 'w') as f:
            json.dump({
                'filename': filename,
                'threshold': threshold,
                'num_detections': len(self.filter_results(results, threshold)),
                'detections': detections,
                'timestamp': datetime.now().isoformat()
            }, f, indent=2)

        return {
            'overlay_path': str(overlay_path),
            'results_path': str(results_path)
        }

    def save_segmentation_results(self, image: np.ndarray,
                                  raw_mask: np.ndarray,
                                  filtered_mask: np.ndarray,
                                  output_dir: str, filename: str) -> Dict:
        """Save mask, overlay, comparison figure and metrics (RGB image)"""
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        mask_path = output_path / f"{filename}_mask.png"
        cv2.imwrite(str(mask_path), filtered_mask)

        comparison_path = output_path / f"{filename}_comparison.png"
        overlay = self.create_comparison_visualization(image, raw_mask, filtered_mask,
                                                       str(comparison_path))

        overlay_path = output_path / f"{filename}_overlay.png"
        cv2.imwrite(str(overlay_path), cv2.cvtColor(overlay, cv2.COLOR_RGB2BGR))

        metrics = self.calculate_mask_metrics(filtered_mask)
        results_path = output_path / f"{filename}_results.json"
        with open(results_path, 'w') as f:
            json.dump({
                'filename': filename,
                'metrics': metrics,
                'timestamp': datetime.now().isoformat()
            }, f, indent=2)

        return {
            'mask_path': str(mask_path),
            'overlay_path': str(overlay_path),
            'comparison_path': str(comparison_path),
            'results_path': str(results_path),
            'metrics': metrics
        }
