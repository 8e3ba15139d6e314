"""startProduction tests: validation order, all-or-nothing debits, duplicates."""

import pytest
import pytest_asyncio

from conftest import ADMIN, PRODUCER, make_raw
from producttrace.errors import (
    ArrayLengthMismatchError,
    InsufficientProductQuantityError,
    InvalidProductStageError,
    NoInputsForProductionError,
    NotProductOwnerError,
    ProductNotFoundError,
    ZeroQuantityNotAllowedError,
)
from producttrace.models.product import ProductStage


@pytest_asyncio.fixture
async def materials(ledger, recorder):
    """A main product plus two raw materials (100 and 50 available).

    Creation notifications are cleared.
    """
    main = await make_raw(ledger, quantity=1, name="Biscuits")
    flour = await make_raw(ledger, quantity=100, name="Flour", source="Mill")
    butter = await make_raw(ledger, quantity=50, name="Butter", source="Dairy")
    recorder.clear()
    return main, flour, butter


async def _assert_untouched(ledger, recorder, main, flour, butter):
    assert (await ledger.get_product(flour.id)).available_quantity == 100
    assert (await ledger.get_product(butter.id)).available_quantity == 50
    main = await ledger.get_product(main.id)
    assert main.stage == ProductStage.RAW_MATERIAL
    assert main.current_batch_id == 0
    assert (await ledger.summary()).batch_count == 0
    assert recorder.notifications == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestConsumption:

    async def test_debits_every_input(self, ledger, materials):
        main, flour, butter = materials

        batch = await ledger.start_production(
            PRODUCER, main.id, [flour.id, butter.id], [30, 20], "08:00"
        )

        assert batch.raw_material_ids == [flour.id, butter.id]
        assert batch.quantities_used == [30, 20]
        assert batch.start_time_manual == "08:00"
        assert (await ledger.get_product(flour.id)).available_quantity == 70
        assert (await ledger.get_product(butter.id)).available_quantity == 30

    async def test_can_consume_everything(self, ledger, materials):
        main, flour, _ = materials

        await ledger.start_production(PRODUCER, main.id, [flour.id], [100])

        flour = await ledger.get_product(flour.id)
        assert flour.available_quantity == 0
        assert flour.stage == ProductStage.RAW_MATERIAL

    async def test_duplicate_input_checked_against_running_remainder(self, ledger, materials):
        main, flour, _ = materials

        batch = await ledger.start_production(PRODUCER, main.id, [flour.id, flour.id], [60, 40])

        assert batch.raw_material_ids == [flour.id, flour.id]
        assert (await ledger.get_product(flour.id)).available_quantity == 0

    async def test_duplicate_input_overdraw_rejected(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(InsufficientProductQuantityError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, flour.id], [60, 50])

        assert (exc_info.value.requested, exc_info.value.available) == (50, 40)
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_batch_ids_are_sequential(self, ledger, materials):
        main, flour, butter = materials
        other = await make_raw(ledger, quantity=1, name="Cake")

        first = await ledger.start_production(PRODUCER, main.id, [flour.id], [10])
        second = await ledger.start_production(PRODUCER, other.id, [butter.id], [10])

        assert (first.id, second.id) == (1, 2)
        assert (await ledger.get_product(other.id)).current_batch_id == 2


@pytest.mark.unit
@pytest.mark.asyncio
class TestAllOrNothing:

    async def test_insufficient_quantity(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(InsufficientProductQuantityError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id], [1000])

        err = exc_info.value
        assert (err.product_id, err.requested, err.available) == (flour.id, 1000, 100)
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_late_failure_leaves_earlier_inputs_untouched(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(InsufficientProductQuantityError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, butter.id], [30, 51])

        assert exc_info.value.product_id == butter.id
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_missing_input(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(ProductNotFoundError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, 999], [10, 10])

        assert exc_info.value.product_id == 999
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_input_id_beyond_storage(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(ProductNotFoundError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, 2**64], [10, 1])

        assert exc_info.value.product_id == 2**64
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_quantity_beyond_storage(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(InsufficientProductQuantityError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id], [2**64])

        assert (exc_info.value.requested, exc_info.value.available) == (2**64, 100)
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_zero_quantity_input(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(ZeroQuantityNotAllowedError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, butter.id], [10, 0])

        assert exc_info.value.product_id == butter.id
        await _assert_untouched(ledger, recorder, main, flour, butter)

    async def test_input_past_raw_material(self, ledger, recorder, materials):
        main, flour, butter = materials
        dough = await make_raw(ledger, quantity=10, name="Dough")
        await ledger.start_production(PRODUCER, dough.id, [flour.id], [5])
        recorder.clear()

        with pytest.raises(InvalidProductStageError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [butter.id, dough.id], [5, 5])

        err = exc_info.value
        assert err.product_id == dough.id
        assert (err.actual, err.required) == (ProductStage.PRODUCTION, ProductStage.RAW_MATERIAL)
        assert (await ledger.get_product(butter.id)).available_quantity == 50
        assert (await ledger.get_product(main.id)).stage == ProductStage.RAW_MATERIAL
        assert recorder.notifications == []

    async def test_product_cannot_consume_itself(self, ledger, recorder, materials):
        main, flour, butter = materials

        with pytest.raises(InvalidProductStageError) as exc_info:
            await ledger.start_production(PRODUCER, main.id, [flour.id, main.id], [10, 1])

        err = exc_info.value
        assert err.product_id == main.id
        assert (err.actual, err.required) == (ProductStage.PRODUCTION, ProductStage.RAW_MATERIAL)
        await _assert_untouched(ledger, recorder, main, flour, butter)


@pytest.mark.unit
@pytest.mark.asyncio
class TestCheckOrder:

    async def test_length_mismatch(self, ledger, materials):
        main, flour, _ = materials
        with pytest.raises(ArrayLengthMismatchError):
            await ledger.start_production(PRODUCER, main.id, [flour.id], [10, 20])

    async def test_no_inputs(self, ledger, materials):
        main, _, _ = materials
        with pytest.raises(NoInputsForProductionError):
            await ledger.start_production(PRODUCER, main.id, [], [])

    async def test_length_mismatch_reported_before_missing_input(self, ledger, materials):
        main, _, _ = materials
        with pytest.raises(ArrayLengthMismatchError):
            await ledger.start_production(PRODUCER, main.id, [999], [])

    async def test_stage_reported_before_length_mismatch(self, ledger, materials):
        main, flour, _ = materials
        await ledger.start_production(PRODUCER, main.id, [flour.id], [1])

        with pytest.raises(InvalidProductStageError):
            await ledger.start_production(PRODUCER, main.id, [flour.id], [])

    async def test_ownership_reported_before_stage(self, ledger, materials):
        main, flour, _ = materials
        await ledger.start_production(PRODUCER, main.id, [flour.id], [1])

        with pytest.raises(NotProductOwnerError):
            await ledger.start_production(ADMIN, main.id, [], [])

    async def test_missing_main_product(self, ledger, materials):
        _, flour, _ = materials
        with pytest.raises(ProductNotFoundError) as exc_info:
            await ledger.start_production(PRODUCER, 77, [flour.id], [1])
        assert exc_info.value.product_id == 77

    async def test_first_failing_input_wins(self, ledger, materials):
        """Inputs are validated in list order; a later bad input is not reached."""
        main, flour, _ = materials
        with pytest.raises(ZeroQuantityNotAllowedError):
            await ledger.start_production(PRODUCER, main.id, [flour.id, 999], [0, 5])
