"""
Progress tracking and user feedback system.

Provides stage timing, progress indicators and a completion summary for
the Mandarin Anki Generator run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ProcessingStage(Enum):
    """Major processing stages for progress tracking."""
    INITIALIZATION = "initialization"
    PARSING = "parsing"
    ENRICHMENT = "enrichment"
    PACKAGING = "packaging"
    FINALIZATION = "finalization"


@dataclass
class StageProgress:
    """Progress information for a processing stage."""
    stage: ProcessingStage
    status: str = "pending"  # pending, in_progress, completed, failed
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    progress_percentage: float = 0.0
    current_item: str = ""
    total_items: int = 0
    completed_items: int = 0
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[timedelta]:
        """Get the duration of this stage."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        elif self.start_time:
            return datetime.now() - self.start_time
        return None

    @property
    def is_completed(self) -> bool:
        return self.status in ["completed", "failed"]


class ProgressTracker:
    """
    Tracks progress across all processing stages.

    Everything is reported through logging; the console handler configured by
    the CLI decides what the user actually sees.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.stages: Dict[ProcessingStage, StageProgress] = {
            stage: StageProgress(stage=stage) for stage in ProcessingStage
        }
        self.pipeline_start_time: Optional[datetime] = None
        self.pipeline_end_time: Optional[datetime] = None
        self.current_stage: Optional[ProcessingStage] = None
        self.progress_callbacks: List[Callable[[StageProgress], None]] = []
        self.summary_data: Dict[str, Any] = {}

    def add_progress_callback(self, callback: Callable[[StageProgress], None]) -> None:
        """Add a callback function to be called on progress updates."""
        self.progress_callbacks.append(callback)

    def _notify(self, stage_progress: StageProgress) -> None:
        for callback in self.progress_callbacks:
            callback(stage_progress)

    def start_pipeline(self) -> None:
        """Start tracking the overall pipeline."""
        self.pipeline_start_time = datetime.now()
        self.logger.info("Starting Mandarin Anki Generator run")

    def start_stage(self, stage: ProcessingStage, total_items: int = 0,
                    details: Dict[str, Any] = None) -> None:
        """
        Start a processing stage.

        Args:
            stage: The processing stage to start
            total_items: Total number of items to process in this stage
            details: Additional details about the stage
        """
        stage_progress = self.stages[stage]
        stage_progress.status = "in_progress"
        stage_progress.start_time = datetime.now()
        stage_progress.total_items = total_items
        stage_progress.completed_items = 0
        stage_progress.progress_percentage = 0.0
        stage_progress.details = details or {}
        self.current_stage = stage

        stage_name = stage.value.replace('_', ' ').title()
        if total_items > 0:
            self.logger.info(f"Starting stage: {stage_name} ({total_items} items)")
        else:
            self.logger.info(f"Starting stage: {stage_name}")
        self._notify(stage_progress)

    def update_stage_progress(self, stage: ProcessingStage, completed_items: int = None,
                              current_item: str = "", details: Dict[str, Any] = None) -> None:
        """
        Update progress for a stage.

        Args:
            stage: The processing stage to update
            completed_items: Number of completed items
            current_item: Description of current item being processed
            details: Additional details to update
        """
        stage_progress = self.stages[stage]

        if completed_items is not None:
            stage_progress.completed_items = completed_items
            if stage_progress.total_items > 0:
                stage_progress.progress_percentage = (completed_items / stage_progress.total_items) * 100
        if current_item:
            stage_progress.current_item = current_item
        if details:
            stage_progress.details.update(details)

        if stage_progress.total_items > 0:
            self.logger.debug(
                f"{stage.value}: {stage_progress.completed_items}/{stage_progress.total_items} "
                f"({stage_progress.progress_percentage:.1f}%) {stage_progress.current_item}"
            )
        self._notify(stage_progress)

    def complete_stage(self, stage: ProcessingStage, success: bool = True,
                       details: Dict[str, Any] = None) -> None:
        """
        Mark a stage as completed.

        Args:
            stage: The processing stage to complete
            success: Whether the stage completed successfully
            details: Additional completion details
        """
        stage_progress = self.stages[stage]
        stage_progress.status = "completed" if success else "failed"
        stage_progress.end_time = datetime.now()
        if success:
            stage_progress.progress_percentage = 100.0
        if details:
            stage_progress.details.update(details)

        stage_name = stage.value.replace('_', ' ').title()
        duration = stage_progress.duration
        duration_str = f" ({duration.total_seconds():.1f}s)" if duration else ""
        if success:
            self.logger.info(f"Completed stage: {stage_name}{duration_str}")
        else:
            self.logger.error(f"Failed stage: {stage_name}{duration_str}")

        if self.current_stage == stage:
            self.current_stage = None
        self._notify(stage_progress)

    def complete_pipeline(self, success: bool = True) -> Dict[str, Any]:
        """Finish tracking and return the completion summary."""
        self.pipeline_end_time = datetime.now()
        summary = self.generate_completion_summary()
        duration = summary.get('pipeline_duration')
        duration_str = f" in {duration:.1f}s" if duration is not None else ""
        if success:
            self.logger.info(f"Run completed{duration_str}")
        else:
            self.logger.error(f"Run failed{duration_str}")
        return summary

    def generate_completion_summary(self) -> Dict[str, Any]:
        """
        Generate a completion summary.

        Returns:
            Dictionary containing completion statistics and details
        """
        total_duration = None
        if self.pipeline_start_time and self.pipeline_end_time:
            total_duration = self.pipeline_end_time - self.pipeline_start_time

        stage_summaries = {
            stage.value: {
                'status': progress.status,
                'duration': progress.duration.total_seconds() if progress.duration else None,
                'items_processed': progress.completed_items,
                'total_items': progress.total_items,
                'details': progress.details,
            }
            for stage, progress in self.stages.items()
        }

        return {
            'pipeline_duration': total_duration.total_seconds() if total_duration else None,
            'stages_completed': sum(1 for s in self.stages.values() if s.status == "completed"),
            'stages_failed': sum(1 for s in self.stages.values() if s.status == "failed"),
            'total_stages': len(self.stages),
            'entries': self.summary_data.get('entries', 0),
            'notes_created': self.summary_data.get('notes_created', 0),
            'audio_clips': self.summary_data.get('audio_clips', 0),
            'warnings': self.summary_data.get('warnings', 0),
            'stage_details': stage_summaries,
            'timestamp': datetime.now().isoformat(),
        }

    def update_summary_data(self, **kwargs) -> None:
        """Update summary data with key metrics."""
        self.summary_data.update(kwargs)

    def log_warning(self, stage: ProcessingStage, message: str,
                    details: Dict[str, Any] = None) -> None:
        """
        Log a warning message.

        Args:
            stage: The processing stage this warning relates to
            message: The warning message
            details: Additional details to log
        """
        stage_name = stage.value.replace('_', ' ').title()
        self.logger.warning(f"[{stage_name}] {message}")
        if details:
            for key, value in details.items():
                self.logger.debug(f"[{stage_name}] {key}: {value}")

    def log_error(self, stage: ProcessingStage, message: str,
                  details: Dict[str, Any] = None) -> None:
        stage_name = stage.value.replace('_', ' ').title()
        self.logger.error(f"[{stage_name}] {message}")
        if details:
            for key, value in details.items():
                self.logger.debug(f"[{stage_name}] {key}: {value}")
