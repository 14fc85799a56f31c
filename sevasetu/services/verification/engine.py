"""
Verification Engine - admission-controlled automated verification.

DESIGN PRINCIPLES:
- FIFO queue with a configurable capacity; full queue or duplicate id → Busy
- At most `concurrency` verifications in flight (default 1)
- Explicit stage machine: INIT → GEOFENCE → TIMESTAMP → VISUAL → FRAUD → DONE
- Every stage runs under a time budget; the run always ends with a verdict
- The analysis and the status transition are written in one store operation
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as StageTimeout
from contextlib import contextmanager
from collections import deque
from typing import Callable, Dict, List, Optional
import logging
import threading
import time

from sevasetu.core.exceptions import Busy, DomainError, InvalidTransition, NotFound
from sevasetu.core.settings import settings
from sevasetu.models.complaint import AIAnalysis, Complaint, ComplaintStatus, Verdict
from sevasetu.services.collaborators import Clock, SystemClock
from sevasetu.services.complaint_store import ComplaintStore
from sevasetu.services.status_workflow import LifecycleController
from sevasetu.services.verification.base import (
    CHECK_STAGES,
    RunState,
    StageOutcome,
    VerificationCheckpoint,
    VerificationProvider,
    VerificationRun,
    VerificationStage,
)

logger = logging.getLogger(__name__)

CheckpointListener = Callable[[VerificationCheckpoint], None]


class VerificationEngine:
    """
    Runs simulated multi-stage verification, one complaint per slot.

    Usage:
        with engine.admission(complaint_id):
            controller.submit_work(...)   # queued only if this succeeds

        engine.start()        # worker threads drain the queue
        engine.run_pending()  # or drain it in the calling thread
    """

    def __init__(
        self,
        store: ComplaintStore,
        controller: LifecycleController,
        provider: VerificationProvider,
        clock: Optional[Clock] = None,
        concurrency: Optional[int] = None,
        queue_capacity: Optional[int] = None,
        stage_budget_seconds: Optional[float] = None,
        total_budget_seconds: Optional[float] = None,
        flagged_score: Optional[int] = None,
    ):
        self.store = store
        self.controller = controller
        self.provider = provider
        self.clock = clock or SystemClock()
        self.concurrency = concurrency or settings.VERIFICATION_CONCURRENCY
        self.queue_capacity = settings.VERIFICATION_QUEUE_CAPACITY if queue_capacity is None else queue_capacity
        self.stage_budget_seconds = (
            settings.VERIFICATION_STAGE_BUDGET_SECONDS if stage_budget_seconds is None else stage_budget_seconds
        )
        self.total_budget_seconds = (
            settings.VERIFICATION_TOTAL_BUDGET_SECONDS if total_budget_seconds is None else total_budget_seconds
        )
        self.flagged_score = settings.VERIFICATION_FLAGGED_SCORE if flagged_score is None else flagged_score

        if self.concurrency < 1:
            raise ValueError("Verification concurrency must be at least 1")

        self._cond = threading.Condition()
        self._queue: deque = deque()
        self._reserved: set = set()
        self._in_flight: set = set()
        self._slots = threading.BoundedSemaphore(self.concurrency)
        self._runs: Dict[str, VerificationRun] = {}
        self._listeners: List[CheckpointListener] = []
        self._workers: List[threading.Thread] = []
        self._stopping = False
        self._stage_executor = self._new_stage_executor()

    def _new_stage_executor(self) -> ThreadPoolExecutor:
        # Abandoned (timed out) stage calls keep their thread until they return
        return ThreadPoolExecutor(
            max_workers=max(4, self.concurrency * len(CHECK_STAGES)),
            thread_name_prefix="verification-stage",
        )

    # ------------------------------------------------------------------
    # Admission control
    # ------------------------------------------------------------------

    def _is_active(self, complaint_id: str) -> bool:
        return complaint_id in self._reserved or complaint_id in self._in_flight or complaint_id in self._queue

    @contextmanager
    def admission(self, complaint_id: str):
        """
        Reserve a queue slot for `complaint_id`.

        The complaint is queued only if the body of the `with` block
        succeeds; on error the reservation is released.

        Raises:
            Busy: Already queued / running, or the queue is full
        """
        with self._cond:
            if self._is_active(complaint_id):
                raise Busy(f"Verification for {complaint_id} is already queued or running")
            if len(self._queue) + len(self._reserved) >= self.queue_capacity:
                raise Busy(f"Verification queue is full ({self.queue_capacity} waiting), retry later")
            self._reserved.add(complaint_id)

        try:
            yield
        except BaseException:
            with self._cond:
                self._reserved.discard(complaint_id)
            raise

        with self._cond:
            self._reserved.discard(complaint_id)
            self._queue.append(complaint_id)
            self._runs[complaint_id] = VerificationRun(
                complaint_id=complaint_id,
                state=RunState.QUEUED,
                queued_at=self.clock.now(),
            )
            self._cond.notify()
        logger.info(f"Queued verification for {complaint_id} (queue depth {self.queue_depth})")

    def enqueue(self, complaint_id: str) -> None:
        """
        Queue a complaint that is already in Pending Verification.

        Raises:
            NotFound, InvalidTransition, Busy
        """
        with self.admission(complaint_id):
            complaint = self.store.get(complaint_id)
            if complaint.status != ComplaintStatus.PENDING_VERIFICATION:
                raise InvalidTransition(
                    f"Complaint {complaint_id} is '{complaint.status.value}', "
                    f"only '{ComplaintStatus.PENDING_VERIFICATION.value}' complaints can be verified"
                )

    def recover_pending(self) -> int:
        """Queue every complaint parked in Pending Verification. Returns the count queued."""
        queued = 0
        for complaint in self.store.list(status=ComplaintStatus.PENDING_VERIFICATION.value):
            try:
                self.enqueue(complaint.id)
                queued += 1
            except (Busy, InvalidTransition, NotFound) as e:
                logger.warning(f"Could not queue parked complaint {complaint.id}: {e}")
        if queued:
            logger.info(f"Recovered {queued} complaint(s) awaiting verification")
        return queued

    @property
    def queue_depth(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def in_flight(self) -> List[str]:
        with self._cond:
            return sorted(self._in_flight)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def add_listener(self, listener: CheckpointListener) -> None:
        self._listeners.append(listener)

    def get_run(self, complaint_id: str) -> Optional[VerificationRun]:
        with self._cond:
            run = self._runs.get(complaint_id)
            return run.model_copy(deep=True) if run else None

    def _checkpoint(self, run: VerificationRun, stage: VerificationStage, passed: bool, note: str = "") -> None:
        checkpoint = VerificationCheckpoint(
            complaint_id=run.complaint_id,
            stage=stage,
            passed=passed,
            note=note,
            at=self.clock.now(),
        )
        with self._cond:
            run.stage = stage
            run.checkpoints.append(checkpoint)

        logger.info(f"[VERIFY {run.complaint_id}] {stage.value}: {'passed' if passed else 'failed'} {note}".rstrip())
        for listener in list(self._listeners):
            try:
                listener(checkpoint)
            except Exception as e:
                logger.warning(f"Checkpoint listener failed: {e}")

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(self, complaint_id: str) -> Complaint:
        """
        Verify one complaint in the calling thread.

        Takes a free in-flight slot; never waits for one.

        Raises:
            Busy: No free slot, or this complaint is already running
            NotFound, InvalidTransition: Complaint cannot be verified
        """
        with self._cond:
            if complaint_id in self._in_flight:
                raise Busy(f"Verification for {complaint_id} is already running")
            if not self._slots.acquire(blocking=False):
                raise Busy("All verification slots are in use, retry later")
            if complaint_id in self._queue:
                self._queue.remove(complaint_id)
            self._in_flight.add(complaint_id)

        try:
            return self._run(complaint_id)
        finally:
            self._release(complaint_id)

    def run_pending(self) -> List[str]:
        """Drain the queue in the calling thread (FIFO). Returns processed ids."""
        processed = []
        while True:
            complaint_id = self._take_next(block=False)
            if complaint_id is None:
                return processed
            self._process_taken(complaint_id)
            processed.append(complaint_id)

    def _release(self, complaint_id: str) -> None:
        with self._cond:
            self._in_flight.discard(complaint_id)
            self._slots.release()
            self._cond.notify_all()

    def _take_next(self, block: bool) -> Optional[str]:
        """Pop the next queued id and claim a slot for it."""
        with self._cond:
            while True:
                if self._stopping:
                    return None
                if self._queue and self._slots.acquire(blocking=False):
                    complaint_id = self._queue.popleft()
                    self._in_flight.add(complaint_id)
                    return complaint_id
                if not block:
                    if self._queue:
                        # Queue is non-empty but every slot is taken
                        self._cond.wait(timeout=0.05)
                        continue
                    return None
                self._cond.wait(timeout=0.5)

    def _process_taken(self, complaint_id: str) -> None:
        try:
            self._run(complaint_id)
        except DomainError as e:
            logger.error(f"❌ Verification of {complaint_id} abandoned: {e}")
        except Exception as e:
            logger.error(f"❌ Verification of {complaint_id} crashed: {e}", exc_info=True)
        finally:
            self._release(complaint_id)

    def _run(self, complaint_id: str) -> Complaint:
        with self._cond:
            run = self._runs.get(complaint_id)
            if run is None or run.state in (RunState.COMPLETED, RunState.FAILED):
                run = VerificationRun(complaint_id=complaint_id)
                self._runs[complaint_id] = run
            run.state = RunState.RUNNING
            run.started_at = self.clock.now()
            run.error = None

        try:
            complaint = self.store.get(complaint_id)
            if complaint.status != ComplaintStatus.PENDING_VERIFICATION:
                raise InvalidTransition(
                    f"Complaint {complaint_id} is '{complaint.status.value}', not awaiting verification"
                )

            try:
                info = self.provider.get_model_info()
            except Exception as e:
                failure = f"Verification provider unavailable: {e}"
                logger.error(f"❌ [VERIFY {complaint_id}] {failure}", exc_info=True)
                self._checkpoint(run, VerificationStage.INIT, False, failure)
                analysis = self._fallback_analysis({}, failure)
            else:
                self._checkpoint(run, VerificationStage.INIT, True, f"{info['name']} v{info['version']}")
                outcomes, failure = self._run_stages(run, complaint)
                if failure is None:
                    analysis = self._build_analysis(outcomes)
                else:
                    analysis = self._fallback_analysis(outcomes, failure)

            updated = self.controller.verification_complete(complaint_id, analysis)
        except Exception as e:
            with self._cond:
                run.state = RunState.FAILED
                run.error = str(e)
                run.finished_at = self.clock.now()
            raise

        with self._cond:
            run.state = RunState.COMPLETED
            run.verdict = analysis.verdict
            run.finished_at = self.clock.now()
        self._checkpoint(
            run,
            VerificationStage.DONE,
            analysis.verdict == Verdict.APPROVED,
            f"{analysis.verdict.value} (confidence {analysis.confidence_score})",
        )
        return updated

    def _stage_call(self, stage: VerificationStage, complaint: Complaint) -> StageOutcome:
        if stage == VerificationStage.GEOFENCE:
            return self.provider.check_geofence(complaint)
        if stage == VerificationStage.TIMESTAMP:
            return self.provider.check_timestamp(complaint, self.clock.now())
        if stage == VerificationStage.VISUAL:
            return self.provider.detect_change(complaint)
        if stage == VerificationStage.FRAUD:
            return self.provider.check_fraud(complaint)
        raise ValueError(f"Stage {stage.value} has no provider check")

    def _run_stages(self, run: VerificationRun, complaint: Complaint):
        """
        Execute the check stages in order under the time budgets.

        Returns:
            (outcomes by stage, failure note or None)
        """
        outcomes: Dict[VerificationStage, StageOutcome] = {}
        deadline = time.monotonic() + self.total_budget_seconds

        for stage in CHECK_STAGES:
            budget = min(self.stage_budget_seconds, deadline - time.monotonic())
            if budget <= 0:
                failure = f"Verification exceeded its {self.total_budget_seconds:.1f}s budget before stage '{stage.value}'"
                self._checkpoint(run, stage, False, failure)
                return outcomes, failure

            future = self._stage_executor.submit(self._stage_call, stage, complaint)
            try:
                outcome = future.result(timeout=budget)
            except StageTimeout:
                future.cancel()
                failure = f"Stage '{stage.value}' did not complete within {budget:.1f}s"
                self._checkpoint(run, stage, False, failure)
                return outcomes, failure
            except Exception as e:
                failure = f"Stage '{stage.value}' failed: {e}"
                logger.error(f"❌ [VERIFY {run.complaint_id}] {failure}", exc_info=True)
                self._checkpoint(run, stage, False, failure)
                return outcomes, failure

            outcomes[stage] = outcome
            self._checkpoint(run, stage, outcome.passed, "; ".join(outcome.notes))

        return outcomes, None

    def _build_analysis(self, outcomes: Dict[VerificationStage, StageOutcome]) -> AIAnalysis:
        """Verdict policy: visual change decides, the other checks are reported."""
        visual = outcomes[VerificationStage.VISUAL]
        change_detected = visual.passed

        notes = list(visual.notes)
        for stage in (VerificationStage.GEOFENCE, VerificationStage.TIMESTAMP, VerificationStage.FRAUD):
            outcome = outcomes[stage]
            if not outcome.passed or stage == VerificationStage.GEOFENCE:
                notes.extend(outcome.notes)

        return AIAnalysis(
            gps_match=outcomes[VerificationStage.GEOFENCE].passed,
            timestamp_valid=outcomes[VerificationStage.TIMESTAMP].passed,
            change_detected=change_detected,
            quality_check=outcomes[VerificationStage.FRAUD].passed,
            confidence_score=self.provider.confidence_score(change_detected),
            verdict=Verdict.APPROVED if change_detected else Verdict.FLAGGED,
            notes=notes,
        )

    def _fallback_analysis(self, outcomes: Dict[VerificationStage, StageOutcome], failure: str) -> AIAnalysis:
        """Verdict for a run that could not finish: always FLAGGED."""

        def _passed(stage: VerificationStage) -> bool:
            outcome = outcomes.get(stage)
            return bool(outcome and outcome.passed)

        return AIAnalysis(
            gps_match=_passed(VerificationStage.GEOFENCE),
            timestamp_valid=_passed(VerificationStage.TIMESTAMP),
            change_detected=False,
            quality_check=_passed(VerificationStage.FRAUD),
            confidence_score=self.flagged_score,
            verdict=Verdict.FLAGGED,
            notes=[failure, "Automated verification incomplete, manual review required"],
        )

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def _worker_loop(self) -> None:
        while True:
            complaint_id = self._take_next(block=True)
            if complaint_id is None:
                return
            self._process_taken(complaint_id)

    def start(self) -> None:
        """Start `concurrency` worker threads."""
        with self._cond:
            if self._workers:
                return
            if self._stopping:
                self._stage_executor = self._new_stage_executor()
            self._stopping = False
            for index in range(self.concurrency):
                worker = threading.Thread(
                    target=self._worker_loop,
                    name=f"verification-worker-{index}",
                    daemon=True,
                )
                self._workers.append(worker)
        for worker in self._workers:
            worker.start()
        logger.info(f"✅ Verification engine started ({self.concurrency} slot(s), queue capacity {self.queue_capacity})")

    def stop(self, timeout: float = 5.0) -> None:
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
            workers, self._workers = self._workers, []
        for worker in workers:
            worker.join(timeout=timeout)
        self._stage_executor.shutdown(wait=False)
        logger.info("Verification engine stopped")
