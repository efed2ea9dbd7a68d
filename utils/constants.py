"""
Global constants for the SecureFab Node application.
"""
from pathlib import Path

# Project Structure
BASE_DIR = Path(__file__).parent.parent
CONFIGS_DIR = BASE_DIR / "configs"
ASSETS_DIR = BASE_DIR / "assets"
LOGS_DIR = BASE_DIR / "logs"

DEFAULT_STEPS_PATH = ASSETS_DIR / "steps.json"
DEFAULT_MODEL_PATH = ASSETS_DIR / "models" / "yolov8n.onnx"

# Detector output layout (YOLOv8, 640x640 input)
DEFAULT_INPUT_SIZE = 640
DEFAULT_NUM_ANCHORS = 8400
DEFAULT_NUM_CLASSES = 80

# Render label slots are fixed-width byte strings
LABEL_TEXT_WIDTH = 13

# Named shared buffers
BUFFER_IMAGE = "vst_image_fp32"
BUFFER_DETECTIONS = "nms_detections"
BUFFER_MAPPED = "mapped_objects"

# Training objects (COCO class id -> label)
DEFAULT_TRACKED_OBJECTS = {
    39: "bottle",
    41: "cup",
    73: "book",
    76: "scissors",
}

COCO_CLASS_NAMES = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat",
    "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack",
    "umbrella", "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball",
    "kite", "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket",
    "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair",
    "couch", "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear", "hair drier",
    "toothbrush",
)
