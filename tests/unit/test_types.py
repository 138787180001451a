"""Unit tests for common types"""

from pad2pad.common.types import Button, StateRecord


class TestStateRecord:
    """Test StateRecord helpers"""

    def test_neutral_is_all_zero(self):
        neutral = StateRecord.neutral()

        assert neutral.buttons == 0
        assert neutral.triggers == (0, 0)
        assert neutral.axes == (0, 0, 0, 0)
        assert neutral == StateRecord()

    def test_button_is_pressed(self):
        record = StateRecord(buttons=Button.A | Button.DPAD_LEFT)

        assert record.button_isPressed(Button.A)
        assert record.button_isPressed(Button.DPAD_LEFT)
        assert not record.button_isPressed(Button.B)
        assert not record.button_isPressed(0)

    def test_input_is_active(self):
        assert not StateRecord().input_isActive()
        assert not StateRecord(axes=(10, -10, 0, 0)).input_isActive()
        assert StateRecord(axes=(11, 0, 0, 0)).input_isActive()
        assert StateRecord(triggers=(0, 1)).input_isActive()
        assert StateRecord(buttons=Button.START).input_isActive()

    def test_payload_equals_ignores_envelope(self):
        a = StateRecord(buttons=Button.X, sequence=1, slot_hint=0)
        b = StateRecord(buttons=Button.X, sequence=9, slot_hint=2, flags=4)

        assert a.payload_equals(b)
        assert not a.payload_equals(StateRecord(buttons=Button.Y))

    def test_str_shows_sequence_and_buttons(self):
        text = str(StateRecord(buttons=Button.A, sequence=42))

        assert "[Seq: 42]" in text
        assert "0x1000" in text
