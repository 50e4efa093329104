#!/usr/bin/env python3
"""
LLM Interaction Logger

Logs batch prompts, raw responses and parse outcomes to a plain debug file,
so a run with placeholder batches can be inspected afterwards.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from pathlib import Path

logger = logging.getLogger(__name__)


class LLMLogger:
    """Writes LLM interactions for one analysis run to a debug file."""

    def __init__(self, log_file_path: str = "llm_debug.log", base_dir: Optional[Path] = None):
        """Initialize the LLM logger.

        Args:
            log_file_path: Path to the debug log file
            base_dir: Directory the path is relative to (project root by default)
        """
        root = base_dir if base_dir is not None else Path(__file__).resolve().parents[3]
        self.log_file_path = Path(root) / log_file_path

        # Each run starts a fresh file
        self._clear_log()

    def _clear_log(self):
        try:
            with open(self.log_file_path, 'w', encoding='utf-8') as f:
                f.write(f"=== LLM DEBUG LOG - {datetime.now().isoformat()} ===\n\n")
        except OSError as e:
            logger.error(f"Failed to clear LLM log file: {e}")

    def _write_section(self, title: str, content: str):
        try:
            with open(self.log_file_path, 'a', encoding='utf-8') as f:
                f.write(f"\n{'=' * 80}\n")
                f.write(f"{title}\n")
                f.write(f"{'=' * 80}\n")
                f.write(f"{content}\n")
        except OSError as e:
            logger.error(f"Failed to write to LLM log file: {e}")

    def log_batch_start(self, batch_index: int, record_ids: List[int], batch_size: int):
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Batch size: {batch_size}\n"
        content += f"Records: {', '.join(str(record_id) for record_id in record_ids)}\n"
        self._write_section(f"BATCH {batch_index}", content)

    def log_llm_interaction(self,
                            messages: List[Dict[str, str]],
                            response: Optional[str],
                            analysis_type: str = "batch",
                            error: Optional[Exception] = None):
        """Log one completion request and its raw outcome."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Analysis Type: {analysis_type}\n\n"

        for message in messages:
            content += f"{message.get('role', 'unknown').upper()} PROMPT:\n"
            content += f"{message.get('content', '')}\n\n"

        if error is not None:
            content += f"ERROR: {error.__class__.__name__}: {error}\n"
        else:
            content += "LLM RESPONSE:\n"
            content += f"{response}\n"

        self._write_section(f"LLM INTERACTION ({analysis_type})", content)

    def log_parsed_result(self, parsed: Optional[Dict[str, Any]], analysis_type: str = "batch"):
        """Log the validated result, or the fact that validation failed."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Analysis Type: {analysis_type}\n"
        content += f"Validation Status: {'Success' if parsed is not None else 'Failed'}\n\n"
        if parsed is not None:
            content += json.dumps(parsed, indent=2, ensure_ascii=False)

        self._write_section(f"PARSED RESULT ({analysis_type})", content)

    def log_transition(self, state: str, detail: str):
        self._write_section(f"STATE: {state}", detail)

