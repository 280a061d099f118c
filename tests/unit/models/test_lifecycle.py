import pytest

from app.models.lifecycle import (
    AnalysisStatus,
    DocumentStatus,
    can_transition,
    document_status_for,
    is_terminal,
)


class TestAnalysisTransitions:
    """Allowed moves of the analysis state machine."""

    @pytest.mark.parametrize("target", ["queued", "processing", "complete", "error"])
    def test_queued_can_move_anywhere(self, target):
        assert can_transition("queued", target)

    def test_processing_cannot_go_back_to_queued(self):
        assert not can_transition("processing", "queued")
        assert can_transition("processing", "processing")
        assert can_transition("processing", "complete")
        assert can_transition("processing", "error")

    @pytest.mark.parametrize("terminal", ["complete", "error"])
    @pytest.mark.parametrize("target", ["queued", "processing", "complete", "error"])
    def test_terminal_states_are_final(self, terminal, target):
        assert is_terminal(terminal)
        assert not can_transition(terminal, target)

    def test_active_states_are_not_terminal(self):
        assert not is_terminal(AnalysisStatus.QUEUED)
        assert not is_terminal(AnalysisStatus.PROCESSING)

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError):
            can_transition("queued", "done")


def test_document_mirrors_analysis_status():
    for status in AnalysisStatus:
        assert document_status_for(status) == DocumentStatus(status.value)
    assert DocumentStatus.UPLOADED.value not in {s.value for s in AnalysisStatus}
