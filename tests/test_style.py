import pytest

from voxelkit.quint.style import (
    AlignItems,
    Dimension,
    FlexDirection,
    FlexWrap,
    JustifyContent,
    Style,
)


def test_defaults():
    style = Style()
    assert style.flex_wrap is FlexWrap.NO_WRAP
    assert style.flex_direction is FlexDirection.ROW
    assert style.align_items is AlignItems.STRETCH
    assert style.justify_content is JustifyContent.FLEX_START
    assert style.width == Dimension.auto()
    assert style.height == Dimension.auto()


def test_wrap():
    assert Style().wrap().flex_wrap is FlexWrap.WRAP


def test_vertical():
    assert Style().vertical().flex_direction is FlexDirection.COLUMN


def test_center_cross():
    assert Style().center_cross().align_items is AlignItems.CENTER


def test_center_main_and_space_between():
    assert Style().center_main().justify_content is JustifyContent.SPACE_AROUND
    assert Style().space_between().justify_content is JustifyContent.SPACE_BETWEEN
    assert Style().center_main().space_between().justify_content is JustifyContent.SPACE_BETWEEN


def test_percent_dimensions():
    style = Style().percent_width(0.5).percent_height(0.25)
    assert style.width == Dimension.percent(0.5)
    assert style.height == Dimension.percent(0.25)
    assert Style().percent_size(0.5, 0.25) == style


def test_absolute_dimensions():
    style = Style().absolute_width(120.0).absolute_height(40.0)
    assert style.width == Dimension.points(120.0)
    assert style.height == Dimension.points(40.0)
    assert Style().absolute_size(120.0, 40.0) == style


def test_later_size_overrides_earlier():
    style = Style().percent_width(0.5).absolute_width(30.0)
    assert style.width == Dimension.points(30.0)
    assert style.height == Dimension.auto()


def test_builders_leave_original_untouched():
    base = Style()
    base.wrap().vertical().absolute_size(1.0, 2.0)
    assert base == Style()


def test_chaining_keeps_previous_settings():
    style = Style().wrap().vertical().center_cross()
    assert style.flex_wrap is FlexWrap.WRAP
    assert style.flex_direction is FlexDirection.COLUMN
    assert style.align_items is AlignItems.CENTER


def test_dimension_kind_and_value():
    assert Dimension.percent(0.75).kind == "percent"
    assert Dimension.percent(0.75).value == 0.75
    assert Dimension.undefined().kind == "undefined"


def test_dimension_rejects_unknown_kind():
    with pytest.raises(ValueError):
        Dimension("inches", 1.0)