from flow_ingest.pipeline.completion import CompletionTracker


def test_complete_once_every_source_reported_in_any_order():
    t = CompletionTracker(expected_sources=3)
    assert t.report(300, "gw3", "a/nfcapd.1") is False
    assert t.report(300, "gw1", "a/nfcapd.1") is False
    assert t.report(300, "gw3", "a/nfcapd.1") is False  # duplicate report
    assert t.missing(300) == 1
    assert t.report(300, "gw2", "a/nfcapd.1") is True


def test_pending_is_chronological_and_discard_through():
    t = CompletionTracker(expected_sources=2)
    t.report(900, "gw1", "p900")
    t.report(300, "gw1", "p300")
    t.report(600, "gw2", "p600")
    assert t.pending() == [(300, "p300", 1), (600, "p600", 1), (900, "p900", 1)]

    t.discard_through(600)
    assert [ts for ts, _, _ in t.pending()] == [900]
    t.discard(900)
    assert len(t) == 0
