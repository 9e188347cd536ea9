import pytest

from scorekeeper.errors import ValidationError
from scorekeeper.services.scoring.templates import (
    CatanSheet, GenericSheet, ScoreSheet, TEMPLATE_IDS, coerce_flag, coerce_int, compute_score, get_template,
)


def test_catan_bonuses():
    assert compute_score('catan', {'victory_points': 8}) == 8
    assert compute_score('catan', {'victory_points': 8, 'longest_road': True, 'largest_army': 'true'}) == 12


def test_ticket_to_ride_allows_negative_tickets():
    fields = {'routes': 40, 'tickets': -12, 'longest_path': True}
    assert compute_score('ticket-to-ride', fields) == 38
    with pytest.raises(ValidationError) as exc:
        compute_score('ticket-to-ride', {'routes': -1, 'tickets': 0})
    assert exc.value.field == 'routes'


def test_wingspan_sums_every_category():
    fields = {'birds': 30, 'bonus_cards': 8, 'end_of_round': -2, 'eggs': 10, 'food_cache': 3, 'tucked_cards': 4}
    assert compute_score('wingspan', fields) == 53


@pytest.mark.parametrize('coins,expected', [(0, 0), (2, 0), (18, 6), (20, 6), (21, 7)])
def test_seven_wonders_coins_count_in_threes(coins, expected):
    fields = {'civilian': 0, 'science': 0, 'commercial': 0, 'guilds': 0,
              'military': 0, 'wonder': 0, 'coins': coins}
    assert compute_score('seven-wonders', fields) == expected


def test_seven_wonders_military_may_be_negative():
    fields = {'civilian': 10, 'science': 5, 'commercial': 3, 'guilds': 2,
              'military': -3, 'wonder': 3, 'coins': 17}
    assert compute_score('seven-wonders', fields) == 25


def test_score_sheet_is_abstract():
    with pytest.raises(TypeError):
        ScoreSheet()


def test_values_beyond_64_bits_are_rejected():
    assert coerce_int(2 ** 63 - 1, 'n') == 2 ** 63 - 1
    assert coerce_int(-2 ** 63, 'n') == -2 ** 63
    for too_big in (2 ** 63, -2 ** 63 - 1, 10 ** 20, '100000000000000000000', 1e30):
        with pytest.raises(ValidationError) as exc:
            coerce_int(too_big, 'score')
        assert exc.value.field == 'score'


def test_unknown_template_falls_back_to_generic():
    assert get_template('chess') is GenericSheet
    assert compute_score('chess', {'score': '42'}) == 42
    assert 'chess' not in TEMPLATE_IDS


def test_missing_or_fractional_numbers_are_rejected():
    with pytest.raises(ValidationError):
        CatanSheet.from_fields({})
    with pytest.raises(ValidationError):
        CatanSheet.from_fields({'victory_points': 2.5})
    with pytest.raises(ValidationError):
        CatanSheet.from_fields({'victory_points': 4, 'longest_road': 'maybe'})
    with pytest.raises(ValidationError):
        CatanSheet.from_fields('victory_points=4')


def test_coercion_rules():
    assert coerce_int('7', 'n') == 7
    assert coerce_int(7.0, 'n') == 7
    assert coerce_int(-4, 'n') == -4
    for bad in (None, '', '  ', True, 'seven', [1]):
        with pytest.raises(ValidationError):
            coerce_int(bad, 'n')
    with pytest.raises(ValidationError):
        coerce_int(-1, 'n', 0)
    assert coerce_flag(None, 'f') is False
    assert coerce_flag(1, 'f') is True
    assert coerce_flag('False', 'f') is False


def test_schema_lists_fields():
    schema = get_template('catan').schema()
    assert schema['id'] == 'catan'
    assert schema['rounds'] is False
    assert schema['fields'][0] == {'name': 'victory_points', 'label': 'Victory Points', 'kind': 'number', 'min': 0}
    assert schema['fields'][1] == {'name': 'longest_road', 'label': 'Longest Road', 'kind': 'flag'}
    assert GenericSheet.schema()['rounds'] is True
