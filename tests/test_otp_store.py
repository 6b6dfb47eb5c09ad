import threading

from services.otp_store import OtpStore, OtpSweeper, VerifyOutcome, generate_code


def test_generate_code_is_six_digits():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_put_overwrites_previous_challenge(otp_store, clock):
    otp_store.put("a@x.com", "111111")
    clock.advance(10)
    otp_store.put("a@x.com", "222222")

    challenge = otp_store.get("a@x.com")
    assert challenge.code == "222222"
    assert challenge.issued_at == clock.now
    assert len(otp_store) == 1


def test_consume_reads_and_removes(otp_store):
    otp_store.put("a@x.com", "123456")
    assert otp_store.consume("a@x.com").code == "123456"
    assert otp_store.consume("a@x.com") is None
    assert "a@x.com" not in otp_store


def test_remove_missing_key_is_noop(otp_store):
    otp_store.remove("nobody@x.com")
    assert len(otp_store) == 0


def test_get_evicts_after_ttl(otp_store, clock):
    otp_store.put("a@x.com", "123456")
    clock.advance(300)
    assert otp_store.get("a@x.com") is not None
    clock.advance(1)
    assert otp_store.get("a@x.com") is None
    assert "a@x.com" not in otp_store


def test_verify_mismatch_keeps_challenge(otp_store):
    otp_store.put("a@x.com", "123456")
    assert otp_store.verify("a@x.com", "000000") == VerifyOutcome.MISMATCH
    assert otp_store.verify("a@x.com", "123456") == VerifyOutcome.OK
    assert otp_store.verify("a@x.com", "123456") == VerifyOutcome.NOT_FOUND


def test_verify_expired_removes_challenge(otp_store, clock):
    otp_store.put("a@x.com", "123456")
    clock.advance(301)
    assert otp_store.verify("a@x.com", "123456") == VerifyOutcome.EXPIRED
    assert "a@x.com" not in otp_store


def test_verify_wrong_code_after_expiry_is_mismatch(otp_store, clock):
    otp_store.put("a@x.com", "123456")
    clock.advance(301)
    assert otp_store.verify("a@x.com", "999999") == VerifyOutcome.MISMATCH


def test_sweep_evicts_only_expired(otp_store, clock):
    otp_store.put("old@x.com", "111111")
    clock.advance(200)
    otp_store.put("new@x.com", "222222")
    clock.advance(101)

    assert otp_store.sweep() == 1
    assert "old@x.com" not in otp_store
    assert "new@x.com" in otp_store


def test_sweep_skips_overwritten_entries(otp_store, clock):
    otp_store.put("a@x.com", "111111")
    clock.advance(200)
    otp_store.put("a@x.com", "222222")
    clock.advance(101)

    # first schedule is stale; the replacement is still live
    assert otp_store.sweep() == 0
    assert otp_store.get("a@x.com").code == "222222"


def test_sweep_after_early_remove_counts_nothing(otp_store, clock):
    otp_store.put("a@x.com", "111111")
    otp_store.remove("a@x.com")
    clock.advance(301)
    assert otp_store.sweep() == 0


def test_put_trims_expired_heap_entries(otp_store, clock):
    for i in range(50):
        otp_store.put(f"u{i}@x.com", "123456")
    clock.advance(301)
    otp_store.put("fresh@x.com", "654321")
    assert len(otp_store) == 1
    assert len(otp_store._expiry) == 1


def test_concurrent_verify_succeeds_once():
    store = OtpStore(ttl_seconds=300)
    store.put("race@x.com", "123456")
    results = []
    barrier = threading.Barrier(8)

    def attempt():
        barrier.wait()
        results.append(store.verify("race@x.com", "123456"))

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(VerifyOutcome.OK) == 1
    assert results.count(VerifyOutcome.NOT_FOUND) == 7


def test_sweeper_thread_evicts(clock):
    store = OtpStore(ttl_seconds=1, clock=clock)
    store.put("a@x.com", "123456")
    clock.advance(5)

    sweeper = OtpSweeper(store, interval=0.01)
    sweeper.start()
    try:
        for _ in range(200):
            if "a@x.com" not in store:
                break
            threading.Event().wait(0.01)
    finally:
        sweeper.stop()

    assert "a@x.com" not in store
    assert not sweeper.running


def test_verify_non_ascii_code_is_mismatch(otp_store):
    otp_store.put("a@x.com", "123456")
    assert otp_store.verify("a@x.com", "１２３４５６") == VerifyOutcome.MISMATCH
    assert otp_store.verify("a@x.com", "é") == VerifyOutcome.MISMATCH
    assert otp_store.verify("a@x.com", "12345a") == VerifyOutcome.MISMATCH
    assert otp_store.verify("a@x.com", "123456") == VerifyOutcome.OK
