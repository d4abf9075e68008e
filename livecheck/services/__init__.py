from .api_client import FlashBackApiClient
from .baseline_calibrator import BaselineCalibrator
from .challenge_engine import ChallengeEngine
from .frame_history import FrameHistory
from .result_aggregator import ResultAggregator
from .secure_storage import InMemoryKeyValueStore, KeyValueStore, SecureStorage
from .selfie_uploader import SelfieUploader
from .session_manager import LivenessSessionManager

__all__ = [
    "BaselineCalibrator",
    "ChallengeEngine",
    "FlashBackApiClient",
    "FrameHistory",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "LivenessSessionManager",
    "ResultAggregator",
    "SecureStorage",
    "SelfieUploader",
]
