"""Model Inference Handler - Runs the ONNX object detector through OpenCV DNN.

Implements the InferenceBackend protocol. The network takes a 1x3xHxW
blob and returns [1, 4+C, A]; the handler returns the [A, 4+C] layout the
post-processor expects.
"""
from pathlib import Path

import cv2
import numpy as np

from utils.failures import ConfigError, ContractViolation
from utils.logger import Logger


class ModelInferenceHandler:
    """Loads the detector once and runs it synchronously."""

    def __init__(self, model_path: str):
        self.model_path = model_path
        self.logger = Logger("ModelInferenceHandler")
        self.net = None

    def load(self) -> None:
        """
        Load the ONNX model.

        Raises:
            ConfigError: the model file is missing or cannot be parsed.
        """
        if not Path(self.model_path).exists():
            raise ConfigError(f"Model file not found: {self.model_path}")
        try:
            self.net = cv2.dnn.readNetFromONNX(str(self.model_path))
        except cv2.error as e:
            raise ConfigError(f"Error loading model {self.model_path}: {e}") from e
        self.logger.info(f"Model loaded successfully: {self.model_path}")

    def infer(self, image: np.ndarray) -> np.ndarray:
        """
        Args:
            image: float32 [H, W, 3], RGB, values in [0, 1].

        Returns:
            Raw detector output of shape [A, 4 + C].
        """
        if self.net is None:
            self.load()

        if image.ndim != 3 or image.shape[2] != 3:
            raise ContractViolation(f"Detector input must be [H, W, 3], got {image.shape}")

        blob = np.ascontiguousarray(image.transpose(2, 0, 1)[np.newaxis], dtype=np.float32)
        self.net.setInput(blob)
        output = self.net.forward()

        return self.to_anchor_major(output)

    @staticmethod
    def to_anchor_major(output: np.ndarray) -> np.ndarray:
        """[1, 4+C, A] or [4+C, A] -> [A, 4+C]."""
        output = np.asarray(output)
        if output.ndim == 3:
            output = output[0]
        if output.ndim != 2:
            raise ContractViolation(f"Unexpected detector output shape {output.shape}")
        # Anchors outnumber channels in every detector head we run
        if output.shape[0] < output.shape[1]:
            output = output.T
        return np.ascontiguousarray(output)
