"""
Unit tests for the standalone cleanup runner.

The engine runs against in-memory stores; the Redis lock is mocked.
"""

from contextlib import nullcontext
from datetime import timedelta
from unittest.mock import Mock, patch

import pytest
from redis.exceptions import LockError

from contentshare.application.cleanup_service import ShareCleanupEngine
from contentshare.application.dependency_container import DependencyContainer
from contentshare.config.cleanup_config import CleanupConfig
from contentshare.domain.errors import StorageUnavailableError
from contentshare.infrastructure.redis_repository import RedisRepository
from contentshare.jobs.run_cleanup import (
    LOCK_NAME,
    build_parser,
    main,
    run_locked,
    run_loop,
    run_once,
)
from tests.fixtures import make_share
from tests.fixtures.share_fixtures import BASE_TIME


@pytest.fixture
def redis_repo():
    repo = Mock(spec=RedisRepository)
    repo.distributed_lock.return_value = nullcontext()
    return repo


@pytest.fixture
def engine(share_repository, state_repository, blob_storage, clock):
    return ShareCleanupEngine(share_repository, state_repository, blob_storage, clock=clock)


@pytest.fixture
def container(engine, redis_repo):
    container = DependencyContainer()
    container.register_singleton(ShareCleanupEngine, engine)
    container.register_singleton(RedisRepository, redis_repo)
    container.register_singleton(
        CleanupConfig, CleanupConfig(lock_timeout_seconds=120, lock_blocking_timeout_seconds=2)
    )
    return container


class TestRunLocked:
    def test_runs_engine_under_lock(self, container, redis_repo, share_repository):
        share_repository.seed(make_share("share-1"), make_share("share-2"))

        summary = run_locked(container)

        redis_repo.distributed_lock.assert_called_once_with(
            LOCK_NAME, timeout=120, blocking_timeout=2
        )
        assert summary.processed_count == 2
        assert share_repository.stored("share-1").is_deleted is True

    def test_lock_held_elsewhere_skips_run(self, container, redis_repo, state_repository):
        redis_repo.distributed_lock.side_effect = LockError("held")

        assert run_locked(container) is None
        assert state_repository.read_count == 0

    def test_engine_failure_propagates(self, container, state_repository):
        state_repository.get_error = StorageUnavailableError("down")

        with pytest.raises(StorageUnavailableError):
            run_locked(container)


class TestRunOnce:
    def test_success_returns_zero(self, container):
        assert run_once(container) == 0

    def test_skipped_run_returns_zero(self, container, redis_repo):
        redis_repo.distributed_lock.side_effect = LockError("held")

        assert run_once(container) == 0

    def test_failure_returns_one(self, container, share_repository):
        share_repository.query_error = StorageUnavailableError("down")

        assert run_once(container) == 1


class TestRunLoop:
    def test_sleeps_interval_after_success(self, container):
        sleep = Mock()

        run_loop(container, 300, 60, sleep=sleep, max_iterations=3)

        assert [c[0][0] for c in sleep.call_args_list] == [300, 300, 300]

    def test_backs_off_after_failure(self, container, share_repository):
        sleep = Mock()
        share_repository.query_error = StorageUnavailableError("down")

        def recover(seconds):
            share_repository.query_error = None

        sleep.side_effect = recover

        run_loop(container, 300, 60, sleep=sleep, max_iterations=2)

        assert [c[0][0] for c in sleep.call_args_list] == [60, 300]

    def test_picks_up_new_expiries_between_passes(self, container, share_repository, clock):
        share_repository.seed(
            make_share("later", expires_at=BASE_TIME + timedelta(minutes=2))
        )

        run_loop(
            container, 300, 60,
            sleep=lambda seconds: clock.advance(timedelta(seconds=seconds)),
            max_iterations=2,
        )

        assert share_repository.stored("later").is_deleted is True


class TestMain:
    def test_parser_defaults_to_single_run(self):
        assert build_parser().parse_args([]).loop is False
        assert build_parser().parse_args(["--loop"]).loop is True

    @patch("contentshare.container.build_container")
    @patch("contentshare.config.redis_config.close_redis")
    @patch("contentshare.config.redis_config.init_redis")
    def test_single_run_exit_code(self, init_redis, close_redis, build_container, container):
        build_container.return_value = container

        assert main([]) == 0

        init_redis.assert_called_once()
        close_redis.assert_called_once()

    @patch("contentshare.container.build_container")
    @patch("contentshare.config.redis_config.close_redis")
    @patch("contentshare.config.redis_config.init_redis")
    def test_closes_redis_when_wiring_fails(self, init_redis, close_redis, build_container):
        build_container.side_effect = RuntimeError("no key")

        with pytest.raises(RuntimeError):
            main([])

        close_redis.assert_called_once()
