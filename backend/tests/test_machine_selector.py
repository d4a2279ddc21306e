"""Tests for best-machine selection."""

import uuid

from creamery.services.machine_selector import MachineChoice, select_best

from conftest import ordered_uuid


class TestDefaultYield:
    def test_largest_machine_wins(self, machine_factory):
        recipe_id = uuid.uuid4()
        machines = [
            machine_factory.create(tub_capacity=4),
            machine_factory.create(tub_capacity=8, production_time=45),
            machine_factory.create(tub_capacity=2),
        ]

        choice = select_best(recipe_id, machines, [], default_tubs_per_batch=3.0)

        assert choice.machine_id == machines[1].id
        assert choice.tubs_per_batch == 3.0
        assert choice.production_time_minutes == 45
        assert choice.yield_source == "default"

    def test_capacity_tie_goes_to_lowest_id(self, machine_factory):
        high = machine_factory.create(id=ordered_uuid(20), tub_capacity=6)
        low = machine_factory.create(id=ordered_uuid(10), tub_capacity=6)

        choice = select_best(uuid.uuid4(), [high, low], [], default_tubs_per_batch=3.0)

        assert choice.machine_id == low.id

    def test_no_machines(self):
        assert select_best(uuid.uuid4(), [], [], default_tubs_per_batch=3.0) is None


class TestExplicitYields:
    def test_most_efficient_machine_wins(self, machine_factory, yield_factory):
        recipe_id = uuid.uuid4()
        slow = machine_factory.create(tub_capacity=8, production_time=60)
        fast = machine_factory.create(tub_capacity=4, production_time=20)
        yields = [
            yield_factory.create(recipe_id, slow.id, tubs_per_batch=6.0),
            yield_factory.create(recipe_id, fast.id, tubs_per_batch=3.0),
        ]

        choice = select_best(recipe_id, [slow, fast], yields, default_tubs_per_batch=1.0)

        assert choice.machine_id == fast.id
        assert choice.yield_source == "explicit"
        assert choice.efficiency == 3.0 / 20

    def test_machine_too_small_for_batch_is_skipped(self, machine_factory, yield_factory):
        recipe_id = uuid.uuid4()
        small = machine_factory.create(tub_capacity=2, production_time=10)
        big = machine_factory.create(tub_capacity=8, production_time=60)
        yields = [
            yield_factory.create(recipe_id, small.id, tubs_per_batch=3.0),
            yield_factory.create(recipe_id, big.id, tubs_per_batch=3.0),
        ]

        choice = select_best(recipe_id, [small, big], yields, default_tubs_per_batch=1.0)

        assert choice.machine_id == big.id

    def test_machines_without_yield_row_do_not_qualify(self, machine_factory, yield_factory):
        recipe_id = uuid.uuid4()
        listed = machine_factory.create(tub_capacity=4, production_time=30)
        unlisted = machine_factory.create(tub_capacity=10, production_time=5)
        yields = [yield_factory.create(recipe_id, listed.id, tubs_per_batch=4.0)]

        choice = select_best(recipe_id, [listed, unlisted], yields, default_tubs_per_batch=1.0)

        assert choice.machine_id == listed.id

    def test_efficiency_tie_goes_to_lowest_id(self, machine_factory, yield_factory):
        recipe_id = uuid.uuid4()
        second = machine_factory.create(id=ordered_uuid(2), tub_capacity=4, production_time=30)
        first = machine_factory.create(id=ordered_uuid(1), tub_capacity=4, production_time=30)
        yields = [
            yield_factory.create(recipe_id, second.id, tubs_per_batch=4.0),
            yield_factory.create(recipe_id, first.id, tubs_per_batch=4.0),
        ]

        choice = select_best(recipe_id, [second, first], yields, default_tubs_per_batch=1.0)

        assert choice.machine_id == first.id

    def test_nothing_fits(self, machine_factory, yield_factory):
        recipe_id = uuid.uuid4()
        machine = machine_factory.create(tub_capacity=2)
        yields = [yield_factory.create(recipe_id, machine.id, tubs_per_batch=5.0)]

        assert select_best(recipe_id, [machine], yields, default_tubs_per_batch=1.0) is None


def test_machine_choice_efficiency():
    choice = MachineChoice(uuid.uuid4(), 6.0, 45, "explicit")
    assert round(choice.efficiency, 4) == 0.1333
