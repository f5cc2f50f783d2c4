import random
import re

import pytest

from bizops_console import ids


@pytest.mark.parametrize(
    "generator, pattern",
    [
        (ids.account_id, r"ACC-[1-9]\d{3}"),
        (ids.client_id, r"CL-[1-9]\d{2}"),
        (ids.contract_id, r"CON-[1-9]\d{2}"),
        (ids.expense_id, r"EXP-[1-9]\d{3}"),
        (ids.earning_id, r"E-[1-9]\d{4}"),
        (ids.role_id, r"Role-[1-9]\d{2}"),
    ],
)
def test_prefixed_id_formats_have_no_leading_zero(generator, pattern):
    rng = random.Random(1)
    for _ in range(200):
        assert re.fullmatch(pattern, generator(rng))


def test_employee_id_uses_first_letters_of_name():
    rng = random.Random(3)
    assert re.fullmatch(r"JOH-[1-9]\d{2}", ids.employee_id("John Smith", rng))
    assert re.fullmatch(r"ABC-\d{3}", ids.employee_id("a.b-c d", rng))
    assert re.fullmatch(r"EMP-\d{3}", ids.employee_id("!!", rng))


def test_project_id_uses_initials():
    rng = random.Random(5)
    value = ids.project_id("Website Redesign", rng)
    prefix, number = value.split("-")
    assert prefix == "WR"
    assert 0 <= int(number) <= 999


def test_same_seed_gives_same_ids():
    assert ids.account_id(random.Random(7)) == ids.account_id(random.Random(7))


def test_generate_unique_id_retries_until_free():
    candidates = iter(["ACC-0001", "ACC-0002", "ACC-0003"])
    taken = {"ACC-0001", "ACC-0002"}

    result = ids.generate_unique_id(lambda: next(candidates), taken.__contains__)

    assert result == "ACC-0003"


def test_generate_unique_id_gives_up_after_max_attempts():
    calls = []

    def generate():
        calls.append(1)
        return "ACC-0001"

    with pytest.raises(ids.IdGenerationError):
        ids.generate_unique_id(generate, lambda _: True, max_attempts=4)
    assert len(calls) == 4


def test_generate_unique_id_rejects_invalid_attempts():
    with pytest.raises(ValueError):
        ids.generate_unique_id(lambda: "x", lambda _: False, max_attempts=0)
