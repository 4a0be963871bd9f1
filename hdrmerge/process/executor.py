"""
HDR Execution Module

Contains the main execution logic for merging one or many bracketed sets:
- HDRExecutor: Orchestrates the batch processing workflow
"""

import dataclasses
import logging
from datetime import datetime

from ..errors import LoadError
from ..models import LoadOptions, SaveOptions, SetOutcome
from ..utils.notify_phone import notify_phone
from .bracket_grouper import get_bracketed_sets
from .hdr_processor import HDRProcessor

logger = logging.getLogger(__name__)


class HDRExecutor:
    """
    Orchestrates HDR batch processing workflow.

    This class handles:
    - Grouping input files into bracketed sets in batch mode
    - Skipping single images unless they are requested
    - Loading, naming and saving every set, one after another
    - Collecting a per-set outcome and the completion notification
    """

    def __init__(
        self,
        load_options: LoadOptions,
        save_options: SaveOptions,
        processor: HDRProcessor = None,
        notify: bool = False,
        progress_callback=None,
        completion_callback=None,
        log_callback=None,
    ):
        """
        Initialize the HDR executor.

        Args:
            load_options: Input files and loading options shared by all sets
            save_options: Output options; file names are patterns resolved per set
            processor: HDRProcessor used for every set
            notify: Whether to send a desktop notification when done
            progress_callback: Callback for progress updates (percent, message, arg)
            completion_callback: Callback when processing completes
            log_callback: Callback for log messages
        """
        self.load_options = load_options
        self.save_options = save_options
        self.notify = notify
        self.progress_callback = progress_callback
        self.completion_callback = completion_callback
        self.log_callback = log_callback
        self.processor = processor or HDRProcessor(
            progress_callback=progress_callback,
            log_callback=log_callback,
        )

    def _log(self, message):
        """Send log message to callback or the module logger."""
        if self.log_callback:
            self.log_callback(message)
        else:
            logger.info(message)

    def _error(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            logger.error(message)

    def _determine_sets(self) -> list:
        """Bracketed sets to merge, grouped by capture time in batch mode."""
        if self.load_options.batch:
            return get_bracketed_sets(
                self.load_options,
                self.processor.decoder.capture_interval,
                log_callback=self.log_callback,
            )
        return [self.load_options]

    def _set_save_options(self, merge_set) -> SaveOptions:
        file_name = self.processor.output_file_name(merge_set, self.save_options.file_name)
        return dataclasses.replace(self.save_options, file_name=file_name)

    def process_set(self, set_id: int, options: LoadOptions) -> SetOutcome:
        """Load and save one set. Failures are recorded, never raised."""
        outcome = SetOutcome(file_names=list(options.file_names))
        if not options.with_singles and len(options.file_names) == 1:
            self._log("Skipping single image %s" % options.file_names[0])
            outcome.skipped = True
            return outcome

        try:
            merge_set = self.processor.load(options)
        except LoadError as ex:
            self._error(str(ex))
            outcome.failed_index = ex.index
            outcome.failure = ex.kind
            outcome.error = str(ex)
            return outcome

        set_options = self._set_save_options(merge_set)
        self._log("Writing result to %s" % set_options.file_name)
        try:
            self.processor.save(merge_set, set_options, set_id)
        except (OSError, RuntimeError) as ex:
            self._error("Set %d: Exception - %s" % (set_id, ex))
            outcome.error = str(ex)
            return outcome
        finally:
            merge_set.clear()

        outcome.output_file = set_options.file_name
        return outcome

    def execute(self) -> list:
        """
        Merge every set.

        Returns:
            list: One SetOutcome per bracketed set, in processing order
        """
        start_time = datetime.now()
        self._log("Starting [%s]..." % start_time.strftime("%H:%M:%S"))

        outcomes = []
        for set_id, options in enumerate(self._determine_sets()):
            outcomes.append(self.process_set(set_id, options))

        duration = (datetime.now() - start_time).total_seconds()
        merged = [o for o in outcomes if o.output_file]
        failed = [o for o in outcomes if not o.ok]
        self._log("Done!!!")
        self._log("Total time: %.1f seconds (%.1f minutes)" % (duration, duration / 60))
        self._log("Sets merged: %d, failed: %d, skipped: %d"
                  % (len(merged), len(failed), sum(1 for o in outcomes if o.skipped)))

        if self.notify:
            try:
                notify_phone("Merged %d of %d sets" % (len(merged), len(outcomes)))
            except RuntimeError as ex:
                logger.warning("%s", ex)

        if self.completion_callback:
            self.completion_callback({
                "duration": duration,
                "outcomes": outcomes,
                "total_sets": len(outcomes),
                "failed_sets": len(failed),
            })
        return outcomes


def execute_hdr_processing(
    load_options: LoadOptions,
    save_options: SaveOptions,
    processor: HDRProcessor = None,
    notify: bool = False,
    progress_callback=None,
    completion_callback=None,
    log_callback=None,
) -> bool:
    """
    Merge all sets and report whether every one of them succeeded.

    Returns:
        bool: True if no set failed
    """
    executor = HDRExecutor(
        load_options=load_options,
        save_options=save_options,
        processor=processor,
        notify=notify,
        progress_callback=progress_callback,
        completion_callback=completion_callback,
        log_callback=log_callback,
    )
    return all(outcome.ok for outcome in executor.execute())
