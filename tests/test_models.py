import json
from datetime import datetime, timezone

from cogniread.models import Keypoint, KeypointResult, SessionResult, TestInstance
from tests.utils import make_session, make_test


def test_test_instance_json_round_trip():
    test = make_test(["Neurons communicate through synapses"])
    restored = TestInstance.from_dict(json.loads(json.dumps(test.to_dict())))
    assert restored == test
    assert restored.keypoints[0].tokens == ("neurons", "communicate", "through", "synapses")


def test_keypoint_without_tokens_derives_them():
    keypoint = Keypoint.from_dict({"id": 3, "text": "A memória é seletiva"}, "pt-BR")
    assert keypoint.tokens == ("memoria", "seletiva")


def test_session_result_accepts_javascript_timestamps_and_nulls():
    payload = make_session().to_dict()
    payload["created_at"] = "2024-05-01T12:00:00.000Z"
    payload["z_wpm"] = None
    restored = SessionResult.from_dict(payload)
    assert restored.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert restored.z_wpm is None
    assert restored.rci_coverage is None


def test_hit_count():
    session = make_session(
        keypoint_results=(
            KeypointResult(0, "a", True),
            KeypointResult(1, "b", False),
            KeypointResult(2, "c", True),
        )
    )
    assert session.hit_count == 2
