"""
Configuration management for the liveness service
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration"""

    # Frame history / baseline configuration
    HISTORY_WINDOW_SIZE = int(os.getenv('HISTORY_WINDOW_SIZE', '30'))
    BASELINE_MIN_FRAMES = int(os.getenv('BASELINE_MIN_FRAMES', '5'))

    # Session configuration
    REQUIRED_CHALLENGE_COUNT = int(os.getenv('REQUIRED_CHALLENGE_COUNT', '3'))
    MIN_REQUIRED_CHALLENGES = int(os.getenv('MIN_REQUIRED_CHALLENGES', '2'))
    MAX_SESSION_DURATION_SECONDS = int(os.getenv('MAX_SESSION_DURATION_SECONDS', '120'))
    FACE_LOSS_TIMEOUT_MS = int(os.getenv('FACE_LOSS_TIMEOUT_MS', '2000'))
    GESTURE_MISMATCH_FAIL_FAST = os.getenv('GESTURE_MISMATCH_FAIL_FAST', 'true').lower() == 'true'

    # Face positioning, in px² of the reported face box; 0 disables a bound
    MIN_FACE_AREA_PX = float(os.getenv('MIN_FACE_AREA_PX', '4096'))
    MAX_FACE_AREA_PX = float(os.getenv('MAX_FACE_AREA_PX', '737280'))

    # Challenge durations
    BLINK_DURATION_MS = int(os.getenv('BLINK_DURATION_MS', '5000'))
    SMILE_DURATION_MS = int(os.getenv('SMILE_DURATION_MS', '4000'))
    TURN_DURATION_MS = int(os.getenv('TURN_DURATION_MS', '5000'))
    NOD_DURATION_MS = int(os.getenv('NOD_DURATION_MS', '5000'))

    # FlashBack API configuration
    API_BASE_URL = os.getenv('API_BASE_URL', 'https://flashback.inc:9000')
    API_REFRESH_TOKEN = os.getenv('API_REFRESH_TOKEN', '')
    API_TIMEOUT_SECONDS = float(os.getenv('API_TIMEOUT_SECONDS', '30'))

    # Server configuration
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '8000'))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:8081').split(',')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    @classmethod
    def challenge_durations(cls) -> dict:
        """Default duration in milliseconds for each challenge type"""
        return {
            "blink": cls.BLINK_DURATION_MS,
            "smile": cls.SMILE_DURATION_MS,
            "turn_left": cls.TURN_DURATION_MS,
            "turn_right": cls.TURN_DURATION_MS,
            "nod": cls.NOD_DURATION_MS,
        }


config = Config()
