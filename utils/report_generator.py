# utils/report_generator.py

import html
import logging
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)


class DuplicateReportGenerator:
    """
    Generate HTML reports for video duplicate detection results
    """

    def __init__(self, keyframes_dir: str):
        self.keyframes_dir = Path(keyframes_dir)

    def generate_report(self,
                       duplicates: Dict[str, List[str]],
                       output_path: str = "duplicate_report.html",
                       skipped: List = None):
        """
        Generate HTML report with one section per duplicate group
        """
        skipped = skipped or []
        html_content = self._create_html_template()

        groups = {root: dups for root, dups in duplicates.items() if dups}
        total_duplicates = sum(len(dups) for dups in groups.values())

        # Add statistics
        stats_html = f"""
        <div class="statistics">
            <h2>Duplicate Detection Summary</h2>
            <p><strong>Videos compared:</strong> {len(duplicates) + total_duplicates}</p>
            <p><strong>Duplicate groups:</strong> {len(groups)}</p>
            <p><strong>Duplicate videos:</strong> {total_duplicates}</p>
            <p><strong>Skipped videos:</strong> {len(skipped)}</p>
        </div>
        """

        # Add duplicate groups
        groups_html = "<div class='duplicate-groups'>"

        for idx, (representative, duplicates_list) in enumerate(groups.items()):
            groups_html += self._create_group_html(idx, representative, duplicates_list)

        groups_html += "</div>"
        groups_html += self._create_skipped_html(skipped)

        # Combine and save
        final_html = html_content.replace("{{STATS}}", stats_html)
        final_html = final_html.replace("{{GROUPS}}", groups_html)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(final_html)

        logger.info("Report generated: %s", output_path)

    def _thumbnail(self, asset_id: str) -> str:
        """First keyframe of an asset as an img tag, or empty"""
        asset_dir = self.keyframes_dir / asset_id
        if not asset_dir.is_dir():
            return ""
        frames = sorted(f for f in asset_dir.iterdir() if f.is_file())
        if not frames:
            return ""
        return f'<img src="{html.escape(frames[0].resolve().as_uri())}" />'

    def _create_group_html(self, idx: int,
                          representative: str,
                          duplicates: List[str]) -> str:
        """Create HTML for a duplicate group"""
        group_html = f"""
        <div class="duplicate-group">
            <h3>Group {idx + 1}</h3>
            <div class="representative">
                <h4>Keep (Representative)</h4>
                {self._thumbnail(representative)}
                <p>{html.escape(representative)}</p>
            </div>
            <div class="duplicates-list">
                <h4>Duplicates ({len(duplicates)})</h4>
        """

        for asset_id in duplicates:
            group_html += f"""
                <div class="duplicate-item">
                    {self._thumbnail(asset_id)}
                    <p>{html.escape(asset_id)}</p>
                </div>
                """

        group_html += """
            </div>
        </div>
        """

        return group_html

    def _create_skipped_html(self, skipped: List) -> str:
        """List assets that were not clustered"""
        if not skipped:
            return ""

        rows = "".join(
            f"<li><strong>{html.escape(s.asset_id)}</strong>: {html.escape(s.reason)}</li>"
            for s in skipped
        )
        return f"""
        <div class="skipped">
            <h2>Skipped (not checked for duplicates)</h2>
            <ul>{rows}</ul>
        </div>
        """

    def _create_html_template(self) -> str:
        """HTML template for report"""
        return """
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>Video Duplicate Report</title>
            <style>
                body { font-family: Arial, sans-serif; margin: 20px; }
                .statistics { background: #f0f0f0; padding: 20px; border-radius: 5px; }
                .duplicate-group { border: 1px solid #ccc; margin: 20px 0; padding: 15px; }
                .representative { background: #e8f5e9; padding: 10px; }
                .duplicates-list { display: grid; grid-template-columns: repeat(auto-fill, minmax(200px, 1fr)); gap: 10px; margin-top: 10px; }
                .duplicate-item { border: 1px solid #ddd; padding: 10px; text-align: center; }
                .skipped { background: #fff3e0; padding: 20px; border-radius: 5px; }
                img { max-width: 100%; height: auto; max-height: 200px; object-fit: contain; }
            </style>
        </head>
        <body>
            <h1>Video Duplicate Detection Report</h1>
            {{STATS}}
            {{GROUPS}}
        </body>
        </html>
        """
