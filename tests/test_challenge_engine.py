"""
Unit tests for ChallengeEngine
"""
import random
import re

import pytest
from hypothesis import given, strategies as st

from livecheck.config import config
from livecheck.models.data_models import ChallengeType, FailureReason
from livecheck.services.challenge_engine import ChallengeEngine


class TestChallengeEngine:
    """Test suite for ChallengeEngine class"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = ChallengeEngine(rng=random.Random(7))

    def test_pool_contains_every_type(self):
        assert set(self.engine.CHALLENGE_POOL) == set(ChallengeType)
        assert len(self.engine.CHALLENGE_POOL) == len(set(self.engine.CHALLENGE_POOL))

    def test_every_type_has_an_instruction(self):
        for challenge_type in ChallengeType:
            assert self.engine.CHALLENGE_INSTRUCTIONS[challenge_type]

    def test_generate_session_id_format(self):
        """Session ids are 32 lowercase hex characters"""
        session_id = self.engine.generate_session_id()
        assert re.fullmatch(r"[0-9a-f]{32}", session_id)

    def test_generate_session_id_uniqueness(self):
        ids = {self.engine.generate_session_id() for _ in range(200)}
        assert len(ids) == 200

    def test_sequence_length_and_fields(self):
        challenges = self.engine.generate_challenge_sequence("abc", 3)

        assert len(challenges) == 3
        for index, challenge in enumerate(challenges):
            assert challenge.challenge_id == f"abc_{index}_{challenge.type.value}"
            assert challenge.instruction == self.engine.CHALLENGE_INSTRUCTIONS[challenge.type]
            assert challenge.duration_ms == config.challenge_durations()[challenge.type.value]
            assert challenge.started_at is None
            assert challenge.completed is False

    def test_types_are_distinct_while_pool_allows(self):
        challenges = self.engine.generate_challenge_sequence("abc", 5)
        assert len({c.type for c in challenges}) == 5

    def test_custom_durations(self):
        durations = {t.value: 1234 for t in ChallengeType}
        engine = ChallengeEngine(durations=durations)

        challenges = engine.generate_challenge_sequence("abc", 2)

        assert all(c.duration_ms == 1234 for c in challenges)

    def test_rejects_count_below_minimum(self):
        with pytest.raises(ValueError):
            self.engine.generate_challenge_sequence("abc", 1)

    def test_rejects_unknown_type_in_pool(self):
        with pytest.raises(ValueError):
            self.engine.generate_challenge_sequence("abc", 2, ["blink", "wink"])

    def test_unknown_type_error_hides_enum_lookup(self):
        """The enum lookup failure is not chained onto the reported error"""
        with pytest.raises(ValueError) as exc_info:
            self.engine.generate_challenge_sequence("abc", 2, ["wink", "blink"])

        assert "wink" in str(exc_info.value)
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__ is True

    def test_rejects_empty_pool(self):
        with pytest.raises(ValueError):
            self.engine.generate_challenge_sequence("abc", 2, [])

    def test_rejects_single_type_pool_for_multiple_challenges(self):
        """A one-type pool cannot avoid back-to-back repeats"""
        with pytest.raises(ValueError):
            self.engine.generate_challenge_sequence("abc", 2, ["blink", "blink"])

    def test_single_challenge_allowed_when_minimum_is_one(self):
        engine = ChallengeEngine(min_required=1)

        challenges = engine.generate_challenge_sequence("abc", 1, [ChallengeType.NOD])

        assert [c.type for c in challenges] == [ChallengeType.NOD]

    def test_restricted_pool_is_respected(self):
        challenges = self.engine.generate_challenge_sequence("abc", 6, ["smile", "nod"])

        assert {c.type for c in challenges} == {ChallengeType.SMILE, ChallengeType.NOD}

    def test_failure_instructions(self):
        for reason in FailureReason:
            assert self.engine.failure_instruction(reason)
        assert self.engine.failure_instruction(FailureReason.CHALLENGE_TIMEOUT) == "Too slow, please retry"

    def test_default_rng_is_unpredictable(self):
        """Two default engines should not agree on every long sequence"""
        orders = {
            tuple(c.type for c in ChallengeEngine().generate_challenge_sequence("abc", 5))
            for _ in range(20)
        }
        assert len(orders) > 1


@given(
    num_challenges=st.integers(min_value=2, max_value=25),
    seed=st.integers(min_value=0, max_value=2**32 - 1),
    pool=st.lists(st.sampled_from(list(ChallengeType)), min_size=2, max_size=5, unique=True)
)
def test_no_immediate_repeats(num_challenges, seed, pool):
    """
    Property: for any valid pool and count, consecutive challenges never
    share a type, and distinct types are used first.
    """
    engine = ChallengeEngine(rng=random.Random(seed))

    challenges = engine.generate_challenge_sequence("s", num_challenges, pool)
    types = [c.type for c in challenges]

    assert len(types) == num_challenges
    assert all(t in pool for t in types)
    for previous, current in zip(types, types[1:]):
        assert previous != current
    head = types[:len(pool)]
    assert len(set(head)) == len(head)
