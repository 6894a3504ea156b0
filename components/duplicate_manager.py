# components/duplicate_manager.py

import logging
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from utils.file_utils import get_video_files

logger = logging.getLogger(__name__)

CONCAT_OUTPUT = "concatenated_video.mp4"


class DuplicateVideoManager:
    """
    Acts on a duplicate map: moves duplicates aside, merges what is left
    """

    def __init__(self, video_dir: str, duplicates_dir: str = None,
                 extension: str = ".mp4"):
        self.video_dir = Path(video_dir)
        self.duplicates_dir = Path(duplicates_dir) if duplicates_dir else self.video_dir / "duplicates"
        self.extension = extension
        self.operation_log = []

    def move_duplicates(self, duplicates: Dict[str, List[str]],
                        dry_run: bool = False) -> Dict:
        """
        Move every listed duplicate into the duplicates directory

        Roots are never moved. The duplicate map is trusted to list each
        asset at most once, so no bookkeeping of already moved files is kept.
        """
        results = {
            'moved': [],
            'missing': []
        }

        if not dry_run:
            self.duplicates_dir.mkdir(parents=True, exist_ok=True)

        for root, dups in duplicates.items():
            for asset_id in dups:
                source = self.video_dir / f"{asset_id}{self.extension}"
                target = self.duplicates_dir / source.name

                if not source.exists():
                    logger.warning("Duplicate %s of %s not found at %s", asset_id, root, source)
                    results['missing'].append(asset_id)
                    continue

                if not dry_run:
                    shutil.move(str(source), str(target))
                    self.operation_log.append({
                        'operation': 'move_duplicate',
                        'source': str(source),
                        'destination': str(target),
                        'root': root,
                        'timestamp': datetime.now().strftime("%Y%m%d_%H%M%S")
                    })
                logger.info("Moved %s to duplicates (duplicate of %s)", asset_id, root)
                results['moved'].append(asset_id)

        return results

    def remaining_videos(self) -> List[str]:
        """Videos still in the input directory, excluding merge output"""
        return [
            video for video in get_video_files(str(self.video_dir), [self.extension])
            if Path(video).name != CONCAT_OUTPUT
            and not (self.duplicates_dir / Path(video).name).exists()
        ]

    def generate_concat_list(self) -> str:
        """Write an ffmpeg concat demuxer file list of the remaining videos"""
        file_list_path = self.video_dir / "filelist.txt"

        lines = []
        for video in self.remaining_videos():
            name = Path(video).name.replace("'", "'\\''")
            lines.append(f"file '{name}'")

        with open(file_list_path, 'w', encoding='utf-8') as f:
            f.write("\n".join(lines))

        return str(file_list_path)

    def concat_videos(self, file_list_path: str, output_path: str = None) -> str:
        """Concatenate the listed videos without re-encoding"""
        output_path = output_path or str(self.video_dir / CONCAT_OUTPUT)

        ffmpeg = shutil.which('ffmpeg')
        if ffmpeg is None:
            raise FileNotFoundError("ffmpeg not found on PATH")

        command = [
            ffmpeg, '-hide_banner', '-loglevel', 'error', '-y',
            '-f', 'concat', '-safe', '0',
            '-i', file_list_path,
            '-c', 'copy', output_path
        ]
        subprocess.run(command, check=True, capture_output=True, text=True)
        logger.info("Videos concatenated into %s", output_path)

        return output_path

    def merge_remaining(self) -> str:
        """Concatenate every video that was not moved aside"""
        return self.concat_videos(self.generate_concat_list())
