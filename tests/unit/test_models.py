"""
Unit tests for canonical models and capability requirements.
"""
import pytest

from provider_gateway.models import (
    CapabilityRequirements,
    ChatCompletionRequest,
    ChatMessage,
    MessageRole,
    ModelCapabilities,
    ProviderHealth,
)


class TestChatCompletionRequest:
    """Test ChatCompletionRequest model."""

    def test_create_request(self):
        """Test creating a chat request."""
        request = ChatCompletionRequest(
            model="qwen3-coder-30b",
            messages=[ChatMessage(role=MessageRole.USER, content="Hello")],
        )
        assert request.model == "qwen3-coder-30b"
        assert len(request.messages) == 1
        assert request.stream is False

    def test_role_from_string(self):
        """Roles accept their wire spelling."""
        message = ChatMessage(role="assistant", content="Hi")
        assert message.role == MessageRole.ASSISTANT

    @pytest.mark.parametrize("field,value", [("temperature", 2.5), ("max_tokens", 0)])
    def test_rejects_out_of_range(self, field, value):
        """Test parameter bounds are enforced."""
        with pytest.raises(ValueError):
            ChatCompletionRequest(
                model="m",
                messages=[ChatMessage(role=MessageRole.USER, content="x")],
                **{field: value},
            )


class TestCapabilityRequirements:
    """Test requirement matching against model capabilities."""

    def caps(self, **overrides) -> ModelCapabilities:
        return ModelCapabilities(**{"context_window_tokens": 16000, **overrides})

    def test_numeric_threshold_excludes(self):
        """A 16000-token window does not meet a 32000 requirement."""
        requirements = CapabilityRequirements(context_window_tokens=32000)
        assert not requirements.is_met_by(self.caps())

    def test_numeric_threshold_includes(self):
        """A 16000-token window meets an 8000 requirement."""
        requirements = CapabilityRequirements(context_window_tokens=8000)
        assert requirements.is_met_by(self.caps())

    def test_numeric_threshold_is_inclusive(self):
        """Equal values satisfy the requirement."""
        requirements = CapabilityRequirements(context_window_tokens=16000)
        assert requirements.is_met_by(self.caps())

    def test_true_flag_must_be_present(self):
        """Required flags must be advertised."""
        requirements = CapabilityRequirements(tools=True)
        assert not requirements.is_met_by(self.caps(tools=False))
        assert requirements.is_met_by(self.caps(tools=True))

    def test_false_flag_does_not_constrain(self):
        """A False requirement matches either way."""
        requirements = CapabilityRequirements(images=False)
        assert requirements.is_met_by(self.caps(images=True))
        assert requirements.is_met_by(self.caps(images=False))

    def test_empty_requirements_match_everything(self):
        """No thresholds means no constraint."""
        assert CapabilityRequirements().is_met_by(self.caps())

    def test_combined(self):
        """Every supplied requirement must hold."""
        requirements = CapabilityRequirements(tools=True, max_output_tokens=8192)
        assert requirements.is_met_by(self.caps(tools=True, max_output_tokens=16384))
        assert not requirements.is_met_by(self.caps(tools=True, max_output_tokens=4096))


class TestProviderHealth:
    """Test ProviderHealth model."""

    def test_checked_at_is_set(self):
        """Every health value is timestamped."""
        health = ProviderHealth(healthy=True, latency_ms=12.5)
        assert health.checked_at is not None
        assert health.error is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
