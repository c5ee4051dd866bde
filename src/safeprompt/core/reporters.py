"""
Report generation for batch scan results.
"""

import os
import json
from typing import Dict, Any
from datetime import datetime, timezone

from .utils import logger


class ReportGenerator:
    """Writes scan results as a JSON report for CI integration."""

    def __init__(self):
        self.logger = logger

    def build_report(self, scan_result: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "report_generated": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "report_format": "json",
            "report_version": "1.0",
            **scan_result
        }

    def generate_json_report(
        self,
        scan_result: Dict[str, Any],
        output_path: str
    ) -> str:
        """
        Generate a JSON report from scan results.

        Args:
            scan_result: Scan result dictionary
            output_path: Path to save the report

        Returns:
            Path to the generated report
        """
        report = self.build_report(scan_result)

        # Ensure output directory exists
        os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)

        self.logger.info(f"JSON report generated: {output_path}")
        return output_path
