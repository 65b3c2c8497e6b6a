from scripts.run_sync import unguarded_overlap


def test_memory_guard_with_scheduler_enabled_is_flagged():
    assert unguarded_overlap("memory", sync_enabled=True)


def test_redis_guard_or_disabled_scheduler_is_safe():
    assert not unguarded_overlap("redis", sync_enabled=True)
    assert not unguarded_overlap("memory", sync_enabled=False)
