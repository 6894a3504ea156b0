from dataclasses import dataclass, field
from typing import List, Optional
import yaml
from pathlib import Path

@dataclass
class DuplicateDetectionConfig:
    """Configuration for duplicate detection"""
    hash_threshold: int = 5  # Max differing bits (out of 64) for a frame match
    match_ratio: float = 0.5  # Matching pairs / smaller frame count
    transitive: bool = False  # Union-find grouping instead of greedy roots

    def __post_init__(self):
        if self.hash_threshold < 0:
            raise ValueError(f"hash_threshold must be >= 0, got {self.hash_threshold}")
        if not 0.0 <= self.match_ratio <= 1.0:
            raise ValueError(f"match_ratio must be in [0, 1], got {self.match_ratio}")


@dataclass
class KeyframeConfig:
    """Configuration for keyframe sampling"""
    method: str = "iframe"  # Options: iframe, uniform, scene
    interval: int = 30  # Frame step for uniform sampling
    scene_threshold: float = 0.7  # Histogram correlation below this is a cut
    video_extensions: List[str] = field(default_factory=lambda: [".mp4"])
    max_parallel: int = 4

    def __post_init__(self):
        if self.method not in ("iframe", "uniform", "scene"):
            raise ValueError(f"Unknown keyframe method: {self.method}")
        if self.interval < 1:
            raise ValueError(f"interval must be >= 1, got {self.interval}")
        if self.max_parallel < 1:
            raise ValueError(f"max_parallel must be >= 1, got {self.max_parallel}")


@dataclass
class SystemConfig:
    """System-wide configuration"""
    input_dir: str = "input"
    keyframes_dir: Optional[str] = None  # Default: <input_dir>/keyframes
    duplicates_file: str = "duplicates.json"
    duplicates_dir: Optional[str] = None  # Default: <input_dir>/duplicates
    max_concurrency: int = 100  # In-flight fingerprint tasks
    log_level: str = "INFO"
    log_dir: str = "logs"

    # Duplicate detection
    duplicate_detection: DuplicateDetectionConfig = field(
        default_factory=DuplicateDetectionConfig
    )

    # Keyframe sampling
    keyframes: KeyframeConfig = field(
        default_factory=KeyframeConfig
    )

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")

    def save(self, path: str = "config.yaml"):
        """Save configuration to YAML file"""
        config_dict = {
            'input_dir': self.input_dir,
            'keyframes_dir': self.keyframes_dir,
            'duplicates_file': self.duplicates_file,
            'duplicates_dir': self.duplicates_dir,
            'max_concurrency': self.max_concurrency,
            'log_level': self.log_level,
            'log_dir': self.log_dir,
            'duplicate_detection': {
                'hash_threshold': self.duplicate_detection.hash_threshold,
                'match_ratio': self.duplicate_detection.match_ratio,
                'transitive': self.duplicate_detection.transitive
            },
            'keyframes': {
                'method': self.keyframes.method,
                'interval': self.keyframes.interval,
                'scene_threshold': self.keyframes.scene_threshold,
                'video_extensions': list(self.keyframes.video_extensions),
                'max_parallel': self.keyframes.max_parallel
            }
        }

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, path: str = "config.yaml") -> 'SystemConfig':
        """Load configuration from YAML file"""
        if not Path(path).exists():
            return cls()  # Return default config

        with open(path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f) or {}

        defaults = cls()

        # Load duplicate detection settings
        duplicate_detection = defaults.duplicate_detection
        if 'duplicate_detection' in config_dict:
            dd = config_dict['duplicate_detection'] or {}
            duplicate_detection = DuplicateDetectionConfig(
                hash_threshold=dd.get('hash_threshold', duplicate_detection.hash_threshold),
                match_ratio=dd.get('match_ratio', duplicate_detection.match_ratio),
                transitive=dd.get('transitive', duplicate_detection.transitive)
            )

        # Load keyframe settings
        keyframes = defaults.keyframes
        if 'keyframes' in config_dict:
            kf = config_dict['keyframes'] or {}
            keyframes = KeyframeConfig(
                method=kf.get('method', keyframes.method),
                interval=kf.get('interval', keyframes.interval),
                scene_threshold=kf.get('scene_threshold', keyframes.scene_threshold),
                video_extensions=kf.get('video_extensions', keyframes.video_extensions),
                max_parallel=kf.get('max_parallel', keyframes.max_parallel)
            )

        # Load system settings
        return cls(
            input_dir=config_dict.get('input_dir', defaults.input_dir),
            keyframes_dir=config_dict.get('keyframes_dir', defaults.keyframes_dir),
            duplicates_file=config_dict.get('duplicates_file', defaults.duplicates_file),
            duplicates_dir=config_dict.get('duplicates_dir', defaults.duplicates_dir),
            max_concurrency=config_dict.get('max_concurrency', defaults.max_concurrency),
            log_level=config_dict.get('log_level', defaults.log_level),
            log_dir=config_dict.get('log_dir', defaults.log_dir),
            duplicate_detection=duplicate_detection,
            keyframes=keyframes
        )
