from __future__ import annotations

from answer_engine.jobs.progress import MAX_TRACKED_LOGS, JobProgressTracker, JobRegistry


def test_tracker_walks_job_through_states() -> None:
  registry = JobRegistry()
  record = registry.create(user_id="alice", target_total=10, batch_size=5)
  tracker = JobProgressTracker(job_id=record.job_id, registry=registry)

  tracker.start()
  assert (record.status, record.state) == ("running", "purging")
  assert record.started_at is not None

  tracker.begin_batch(batch_index=1, start_index=1, size=5, generation_calls=1)
  assert record.state == "generating"
  assert record.generation_calls == 1
  tracker.begin_save(batch_index=1)
  assert record.state == "saving"
  tracker.complete_batch(batch_index=1, persisted_count=5)
  assert record.persisted_count == 5

  tracker.complete(persisted_count=10)
  assert (record.status, record.state) == ("done", "complete")
  assert record.is_terminal
  assert record.logs[-1] == "Generation complete with 10 answers."


def test_fail_records_error_message() -> None:
  registry = JobRegistry()
  record = registry.create(user_id="alice", target_total=25, batch_size=5)
  tracker = JobProgressTracker(job_id=record.job_id, registry=registry)

  tracker.fail(message="Batch 2 failed: timeout")

  assert (record.status, record.state) == ("error", "failed")
  assert record.error == "Batch 2 failed: timeout"
  assert record.completed_at is not None


def test_logs_keep_a_rolling_window() -> None:
  registry = JobRegistry()
  record = registry.create(user_id="alice", target_total=25, batch_size=5)
  tracker = JobProgressTracker(job_id=record.job_id, registry=registry)

  for index in range(MAX_TRACKED_LOGS + 20):
    tracker.add_logs(f"line {index}")

  assert len(tracker.logs) == MAX_TRACKED_LOGS
  assert tracker.logs[0] == "line 20"


def test_registry_evicts_oldest_jobs() -> None:
  registry = JobRegistry(max_jobs=2)
  first = registry.create(user_id="alice", target_total=5, batch_size=5)
  registry.create(user_id="bob", target_total=5, batch_size=5)
  third = registry.create(user_id="alice", target_total=5, batch_size=5)

  assert len(registry) == 2
  assert registry.get(first.job_id) is None
  assert registry.update(first.job_id, status="done") is None
  assert registry.get(third.job_id) is third
