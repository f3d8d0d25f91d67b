from __future__ import annotations

import pytest

from capdaq.ad7746.errors import InvalidArgumentError
from capdaq.ad7746.gpio import PortState, configure_board, pack_ports, read_gpio, set_led, write_gpio


def test_pack_interleaves_value_and_direction():
    payload = pack_ports([PortState(0x01, 0x80), PortState(0x02, 0x40)])
    assert payload == b"\x01\x80\x02\x40"


@pytest.mark.parametrize("count", [0, 4])
def test_port_count_out_of_range(bridge, transport, count):
    with pytest.raises(InvalidArgumentError):
        write_gpio(transport, [PortState()] * count)
    with pytest.raises(InvalidArgumentError):
        read_gpio(transport, count)
    assert bridge.calls == []


def test_configure_board(bridge, transport):
    configure_board(transport)
    bm_request_type, request, value, index, payload = bridge.calls[0]
    assert bm_request_type == 0x40
    assert request == 0xDB
    assert (value, index) == (0, 0)
    assert bytes(payload) == b"\x00\x80\x00\x00\x00\x00"


def test_led_is_active_low(bridge, transport):
    set_led(transport, False)
    assert read_gpio(transport, 1) == [PortState(value=0x80, direction=0x80)]
    set_led(transport, True)
    assert read_gpio(transport, 1) == [PortState(value=0x00, direction=0x80)]
