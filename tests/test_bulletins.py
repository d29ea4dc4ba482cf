from datetime import datetime, timedelta

import pytest

from aprsgate.bulletins import (
    BULLETIN_SEND_COOLDOWN,
    Bulletin,
    BulletinRow,
    BulletinSendTracker,
    build_bulletins_view,
    classify_bulletin,
    compose_bulletin,
    is_bulletin_addressee,
    nws_severity,
    passes_group_whitelist,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_tracker_allows_first_then_refuses():
    clock = FakeClock()
    tracker = BulletinSendTracker(clock=clock)
    assert tracker.check_and_mark("BLN1ARES ") == 0
    clock.now += 10
    assert tracker.check_and_mark("bln1ares ") == pytest.approx(BULLETIN_SEND_COOLDOWN - 10)


def test_tracker_allows_after_cooldown():
    clock = FakeClock()
    tracker = BulletinSendTracker(clock=clock)
    assert tracker.check_and_mark("BLN1") == 0
    clock.now += BULLETIN_SEND_COOLDOWN
    assert tracker.check_and_mark("BLN1") == 0
    clock.now += 1
    assert tracker.check_and_mark("BLN1") > 0


def test_tracker_is_per_addressee():
    tracker = BulletinSendTracker(clock=FakeClock())
    assert tracker.check_and_mark("BLN1") == 0
    assert tracker.check_and_mark("BLN2") == 0


def test_compose_pads_addressee():
    addr, info = compose_bulletin(" 1ares ", "Net tonight")
    assert addr == "BLN1ARES "
    assert len(addr) == 9
    assert info == ":BLN1ARES :Net tonight"


def test_compose_strips_reserved_and_truncates():
    addr, info = compose_bulletin("A", "hi{there|x~" + "z" * 100)
    body = info[len(":" + addr + ":"):]
    assert "{" not in body and "|" not in body and "~" not in body
    assert len(body) == 67
    assert body.startswith("hithere")


@pytest.mark.parametrize("ident", ["", "-1", "1ARESXX", "ab cd"])
def test_compose_rejects_bad_identifier(ident):
    with pytest.raises(ValueError):
        compose_bulletin(ident, "body")


def test_compose_rejects_empty_body():
    with pytest.raises(ValueError, match="body required"):
        compose_bulletin("1", "   ")


def test_compose_rejects_body_of_only_reserved_chars():
    with pytest.raises(ValueError, match="empty after sanitizing"):
        compose_bulletin("1", "{|~")


@pytest.mark.parametrize(
    "dest,expected",
    [
        ("BLN1ARES ", True),
        ("nws-lwx  ", True),
        ("NWS_LWX", True),
        ("SKYFWD", True),
        ("CWA-ZDC", True),
        ("CWAZDC", False),
        ("N0CALL   ", False),
    ],
)
def test_is_bulletin_addressee(dest, expected):
    assert is_bulletin_addressee(dest) is expected


def test_nws_severity_buckets():
    assert nws_severity("TOR") == "severe"
    assert nws_severity("HLS") == "warning"
    assert nws_severity("FFA") == "watch"
    assert nws_severity("AFD") == "statement"
    assert nws_severity("XYZ") == "info"


def test_classify_group_and_numbered_and_announce():
    g = classify_bulletin("N0CALL", "BLN1ARES ")
    assert (g.kind, g.identifier, g.group, g.dest_label) == ("group", "1", "ARES", "BLN1ARES")
    assert classify_bulletin("N0CALL", "BLN3     ").kind == "numbered"
    assert classify_bulletin("N0CALL", "BLNA").kind == "announce"


def test_classify_nws():
    b = classify_bulletin("FWDFFW", "NWS-LWX  ")
    assert (b.kind, b.office, b.product, b.severity) == ("nws", "LWX", "FFW", "severe")


def test_classify_nws_underscore_downgrades_info():
    b = classify_bulletin("ABCXYZ", "NWS_LWX")
    assert b.severity == "statement"


def test_classify_sky_and_cwa():
    sky = classify_bulletin("X", "SKYFWD")
    assert (sky.kind, sky.office, sky.severity) == ("sky", "FWD", "info")
    cwa = classify_bulletin("X", "CWA-ZDC")
    assert (cwa.kind, cwa.office) == ("cwa", "ZDC")


def test_classify_unknown():
    assert classify_bulletin("X", "N0CALL").kind == ""


def test_group_whitelist():
    grp = classify_bulletin("X", "BLN1ARES")
    assert passes_group_whitelist(grp, [])
    assert passes_group_whitelist(grp, [" ares "])
    assert not passes_group_whitelist(grp, ["SKYWARN"])
    assert passes_group_whitelist(classify_bulletin("X", "BLN1"), ["SKYWARN"])
    assert not passes_group_whitelist(Bulletin(source="X", dest="Y"), [])


def _rows(now):
    return [
        BulletinRow("N0CALL", "BLN1", "old numbered", now - timedelta(minutes=30)),
        BulletinRow("N0CALL", "BLN2", "new numbered", now - timedelta(minutes=1)),
        BulletinRow("N0CALL", "BLN1ARES", "ares", now - timedelta(minutes=5)),
        BulletinRow("N0CALL", "BLN1SKYW", "filtered", now - timedelta(minutes=5)),
        BulletinRow("N0CALL", "BLNA", "announce", now - timedelta(minutes=2)),
        BulletinRow("FWDSPS", "NWS-FWD", "statement", now - timedelta(minutes=1)),
        BulletinRow("FWDTOR", "NWS-FWD", "tornado", now - timedelta(minutes=20)),
        BulletinRow("X", "SKYFWD", "sky", now - timedelta(minutes=3)),
        BulletinRow("N0CALL", "BLN3", "expired", now - timedelta(days=2)),
    ]


def test_build_view_sections_and_ordering():
    now = datetime(2024, 1, 1, 12, 0)
    view = build_bulletins_view(_rows(now), ["ARES"], True, False, now - timedelta(hours=24))
    assert view.total_rows == 9
    assert view.group_list == "ARES"
    assert [b.body for b in view.numbered] == ["new numbered", "ares", "old numbered"]
    assert [b.body for b in view.announces] == ["announce"]
    assert [b.body for b in view.nws] == ["tornado", "statement"]
    assert [b.body for b in view.sky] == ["sky"]
    assert view.cwa == []


def test_build_view_without_nws_subscription():
    now = datetime(2024, 1, 1, 12, 0)
    view = build_bulletins_view(_rows(now), [], False, True, now - timedelta(hours=24))
    assert view.nws == [] and view.sky == []
    assert view.offline is True and view.nws_enabled is False
    assert len(view.numbered) == 4
    assert all(b.time >= now - timedelta(hours=24) for b in view.numbered)