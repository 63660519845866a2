"""Session-based markdown logger."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


class SessionLogger:
    """
    Logger that saves each stage's oracle exchange to markdown files,
    one directory per job.
    """

    def __init__(self, base_dir: Optional[str] = None, enabled: bool = True) -> None:
        """
        Initialize the logger.

        Args:
            base_dir: Base directory for logs. Defaults to 'logs' in the working directory.
            enabled: When False every method is a no-op.
        """
        self.base_dir = Path(base_dir) if base_dir else Path.cwd() / "logs"
        self.enabled = enabled
        self.session_dir: Optional[Path] = None
        self.stage_counter: int = 0

    def start_session(self, job_id: str, question: str = "") -> Optional[str]:
        """
        Start a new session by creating a per-job directory.

        Returns:
            Path of the session directory, or None when disabled.
        """
        if not self.enabled:
            return None

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        self.session_dir = self.base_dir / f"{timestamp}_{job_id}"
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self.stage_counter = 0

        metadata_content = (
            f"# Session: {job_id}\n\n"
            f"- **Started at**: {datetime.now().isoformat()}\n"
            f"- **Question**: {question}\n\n---\n"
        )
        (self.session_dir / "00_Metadata.md").write_text(metadata_content, encoding="utf-8")
        return str(self.session_dir)

    def log_stage_result(
        self,
        stage_name: str,
        result: Any,
        input_text: Optional[str] = None,
        system_prompt: Optional[str] = None,
        execution_time_ms: Optional[float] = None,
    ) -> None:
        """Log one stage's result to a numbered markdown file."""
        if not self.enabled or self.session_dir is None:
            return

        self.stage_counter += 1
        filepath = self.session_dir / f"{self.stage_counter:02d}_{stage_name}.md"

        content = f"# {stage_name}\n\n"
        if execution_time_ms is not None:
            content += f"**Execution Time**: {execution_time_ms:.2f} ms\n\n"
        content += f"**Timestamp**: {datetime.now().isoformat()}\n\n"
        if system_prompt:
            content += f"## System Prompt\n\n```\n{system_prompt}\n```\n\n"
        if input_text:
            content += f"## Input\n\n```\n{input_text}\n```\n\n"
        content += (
            "## Result\n\n```json\n"
            f"{json.dumps(result, indent=2, ensure_ascii=False, default=str)}\n```\n"
        )
        filepath.write_text(content, encoding="utf-8")

    def end_session(self, success: bool, final_message: str = "") -> None:
        """End the current session, writing a closing summary."""
        if self.enabled and self.session_dir is not None:
            status = "completed" if success else "failed"
            content = f"# Outcome: {status}\n\n{final_message}\n"
            (self.session_dir / "99_Outcome.md").write_text(content, encoding="utf-8")
        self.session_dir = None
        self.stage_counter = 0
