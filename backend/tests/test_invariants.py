"""Ledger-wide invariants under random operation sequences and concurrency."""

import asyncio
import random

import pytest

from conftest import ADMIN, OUTSIDER, PRODUCER, make_raw
from producttrace.errors import InsufficientProductQuantityError, LedgerError
from producttrace.models.product import ProductStage

CALLERS = [ADMIN, PRODUCER, OUTSIDER]


async def _check_invariants(ledger, seen_stages: dict[int, ProductStage]) -> None:
    products = await ledger.get_all_products()
    assert [p.id for p in products] == list(range(1, len(products) + 1))

    consumed: dict[int, int] = {}
    for product in products:
        assert 0 <= product.available_quantity <= product.initial_quantity

        previous = seen_stages.get(product.id, ProductStage.RAW_MATERIAL)
        assert product.stage in (previous, previous.next_stage())
        seen_stages[product.id] = product.stage

        if product.stage >= ProductStage.PRODUCTION:
            batch = await ledger.get_batch(product.current_batch_id)
            assert batch.product_id == product.id
            assert batch.is_packaged == (product.stage >= ProductStage.PACKAGING)
            for input_id, qty in zip(batch.raw_material_ids, batch.quantities_used):
                consumed[input_id] = consumed.get(input_id, 0) + qty
        else:
            assert product.current_batch_id == 0

    for product in products:
        assert consumed.get(product.id, 0) == product.initial_quantity - product.available_quantity


async def _random_operation(ledger, rng: random.Random) -> None:
    products = await ledger.get_all_products()
    caller = rng.choice(CALLERS)
    op = rng.choice(["create", "produce", "produce", "package", "distribute"])

    if op == "create" or not products:
        await make_raw(ledger, quantity=rng.randint(0, 60), owner=caller)
        return

    target = rng.choice(products)
    if op == "produce":
        count = rng.randint(0, 3)
        ids = [rng.choice(products).id for _ in range(count)]
        quantities = [rng.randint(0, 40) for _ in range(count)]
        await ledger.start_production(caller, target.id, ids, quantities)
    elif op == "package":
        await ledger.package_product(caller, target.id)
    else:
        await ledger.distribute_product(caller, target.id, "out")


@pytest.mark.integration
@pytest.mark.asyncio
class TestInvariants:

    @pytest.mark.parametrize("seed", [1, 7, 42])
    async def test_random_sequences_keep_invariants(self, ledger, seed):
        rng = random.Random(seed)
        seen_stages: dict[int, ProductStage] = {}

        for _ in range(60):
            try:
                await _random_operation(ledger, rng)
            except LedgerError:
                pass
            await _check_invariants(ledger, seen_stages)

    async def test_concurrent_production_never_over_consumes(self, ledger):
        sugar = await make_raw(ledger, quantity=100)
        mains = [await make_raw(ledger, quantity=1, name=f"Main {i}") for i in range(10)]

        results = await asyncio.gather(
            *(ledger.start_production(PRODUCER, m.id, [sugar.id], [15]) for m in mains),
            return_exceptions=True,
        )

        batches = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(batches) == 6
        assert all(isinstance(f, InsufficientProductQuantityError) for f in failures)
        assert sorted(b.id for b in batches) == list(range(1, 7))
        assert (await ledger.get_product(sugar.id)).available_quantity == 10
        await _check_invariants(ledger, {})

    async def test_concurrent_creates_get_distinct_ids(self, ledger):
        created = await asyncio.gather(*(make_raw(ledger, name=f"p{i}") for i in range(12)))

        assert sorted(p.id for p in created) == list(range(1, 13))
        assert (await ledger.summary()).product_count == 12
