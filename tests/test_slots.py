from unittest.mock import MagicMock

import pytest

from branding.compositor import LogoLayer
from branding.slots import LogoSlots


def layer():
    image = MagicMock()
    image.size = (10, 10)
    return LogoLayer(image)


def test_slots_start_empty():
    slots = LogoSlots()
    assert len(slots) == 3
    assert slots.layers() == [None, None, None]
    assert not slots.has_logo()


def test_assign_keeps_positions():
    slots = LogoSlots(3)
    first, last = layer(), layer()

    slots.assign(0, first)
    slots.assign(2, last)

    assert slots.layers() == [first, None, last]
    assert slots.has_logo()


def test_replacing_a_logo_closes_the_old_image():
    slots = LogoSlots(2)
    old, new = layer(), layer()

    slots.assign(1, old)
    slots.assign(1, new)

    old.image.close.assert_called_once()
    new.image.close.assert_not_called()
    assert slots[1] is new


def test_clear_empties_one_slot():
    slots = LogoSlots(3)
    logos = [layer(), layer(), layer()]
    for index, item in enumerate(logos):
        slots.assign(index, item)

    slots.clear(1)

    assert slots.layers() == [logos[0], None, logos[2]]
    logos[1].image.close.assert_called_once()


def test_resize_keeps_existing_slots():
    slots = LogoSlots(2)
    first, second = layer(), layer()
    slots.assign(0, first)
    slots.assign(1, second)

    slots.resize(4)
    assert slots.layers() == [first, second, None, None]

    slots.resize(1)
    assert slots.layers() == [first]
    second.image.close.assert_called_once()


def test_reset_releases_everything():
    slots = LogoSlots(2)
    logos = [layer(), layer()]
    for index, item in enumerate(logos):
        slots.assign(index, item)

    slots.reset()

    assert len(slots) == 2
    assert not slots.has_logo()
    for item in logos:
        item.image.close.assert_called_once()


@pytest.mark.parametrize("count", [0, 7, -1])
def test_count_out_of_range(count):
    with pytest.raises(ValueError):
        LogoSlots(count)
    with pytest.raises(ValueError):
        LogoSlots(1).resize(count)
