"""Repository operations against an in-memory SQLite database."""

from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InvalidRequestError

from datacore.repositories.base import (
    CoreRepository,
    CoreSpecification,
    DateRangeSpecification,
    FieldEqualsSpecification,
    FieldInSpecification,
    FieldLikeSpecification,
    Page,
)
from tests.models import Category, Product


@pytest.fixture
def repo(session):
    return CoreRepository(Product, session)


def _names(items):
    return [item.name for item in items]


class TestWrites:
    async def test_add_is_pending_until_save(self, repo, session):
        await repo.add(Product(name="Lamp", price=20.0, created_at=date(2024, 6, 1)))
        await session.rollback()
        assert await repo.count_all() == 0

        await repo.add_and_save(Product(name="Lamp", price=20.0, created_at=date(2024, 6, 1)))
        await session.rollback()
        assert await repo.count_all() == 1

    async def test_add_range_and_save(self, repo):
        await repo.add_range_and_save(
            Product(name=f"Item {i}", price=float(i), created_at=date(2024, 1, i)) for i in range(1, 4)
        )
        assert await repo.count_all() == 3

    async def test_remove_and_save(self, repo, products):
        await repo.remove_and_save(products[0])
        assert await repo.find(1) is None
        assert await repo.count_all() == 4

    async def test_remove_range_and_save(self, repo, products):
        await repo.remove_range_and_save(products[:3])
        assert _names(await repo.get_all()) == ["Go board", "Notebook"]

    async def test_update_merges_detached_state(self, repo, session, products):
        changed = Product(
            id=1, name="Atlas (2nd ed.)", price=14.0, is_active=True,
            created_at=date(2024, 1, 5), category_id=1,
        )
        merged = await repo.update_and_save(changed)

        assert merged is products[0]
        assert (await repo.find(1)).name == "Atlas (2nd ed.)"

    async def test_update_range_returns_merged_instances(self, repo, products):
        for product in products[:2]:
            product.price += 1
        merged = await repo.update_range_and_save(products[:2])
        assert [p.price for p in merged] == [13.5, 31.0]

    async def test_orm_errors_propagate(self, session, categories):
        repo = CoreRepository(Category, session)
        with pytest.raises(IntegrityError):
            await repo.add_and_save(Category(name="Books"))


class TestActions:
    async def test_any_by_criterion(self, repo, products):
        assert await repo.any_by(Product.price > 40)
        assert not await repo.any_by(Product.price > 100)

    async def test_any_by_select_statement(self, repo, products):
        assert await repo.any_by(select(Product).where(Product.name == "Dune"))
        assert not await repo.any_by(select(Product).where(Product.name == "Ulysses"))

    async def test_any_by_other_entity(self, repo, products):
        assert await repo.any_by(Category.name == "Games", entity=Category)

    async def test_counts(self, repo, products):
        assert await repo.count_all() == 5
        assert await repo.count_all(entity=Category) == 2
        assert await repo.count_all_by(FieldEqualsSpecification("is_active", True)) == 4
        assert await repo.count_all_by(lambda p: p.category_id.is_(None)) == 1

    async def test_find(self, repo, products):
        assert (await repo.find(3)).name == "Dune"
        assert (await repo.find(2, entity=Category)).name == "Games"
        assert await repo.find(99) is None


class TestQueries:
    async def test_get_by_criterion(self, repo, products):
        found = await repo.get_by(Product.name == "Chess")
        assert found.id == 2
        assert await repo.get_by(Product.name == "Ulysses") is None

    async def test_get_by_specification_with_include(self, repo, products, session):
        session.expunge_all()
        spec = CoreSpecification(FieldEqualsSpecification("name", "Dune")).include("category")

        found = await repo.get_by(spec)

        assert found.category.name == "Books"

    async def test_get_all_without_criteria(self, repo, products):
        assert len(await repo.get_all()) == 5

    async def test_get_all_composed_specification(self, repo, products):
        spec = (
            CoreSpecification(FieldEqualsSpecification("is_active", True))
            .where(FieldInSpecification("category_id", [1, 2]))
            .order_by_desc("price")
        )
        assert _names(await repo.get_all(spec)) == ["Chess", "Atlas", "Dune"]

    async def test_get_all_specification_operators(self, repo, products):
        spec = CoreSpecification(
            FieldLikeSpecification("name", "%o%") & ~FieldEqualsSpecification("is_active", False)
        ).order_by_asc("name")
        assert _names(await repo.get_all(spec)) == ["Notebook"]

    async def test_get_all_date_range(self, repo, products):
        spec = CoreSpecification(
            DateRangeSpecification("created_at", date(2024, 2, 1), date(2024, 4, 30))
        ).order_by_asc("id")
        assert _names(await repo.get_all(spec)) == ["Chess", "Dune", "Go board"]

    async def test_get_all_applies_specification_paging(self, repo, products):
        spec = CoreSpecification().order_by_asc("id").paginate(skip=1, take=2)
        assert _names(await repo.get_all(spec)) == ["Chess", "Dune"]

    async def test_get_all_queryable_is_composable(self, repo, products):
        statement = repo.get_all_queryable(Product.price < 20).order_by(Product.price)
        assert _names(await repo.get_all_by_queryable(statement)) == ["Notebook", "Dune", "Atlas"]

    async def test_get_all_other_entity(self, repo, products):
        assert _names(await repo.get_all(Category.id == 2, entity=Category)) == ["Games"]


class TestRawSql:
    async def test_get_all_sql_with_parameters(self, repo, products):
        found = await repo.get_all_sql(
            "SELECT * FROM products WHERE price > :min_price", {"min_price": 10}
        )
        assert sorted(_names(found)) == ["Atlas", "Chess", "Go board"]

    async def test_get_all_sql_shaped_by_specification(self, repo, products):
        spec = (
            CoreSpecification(FieldEqualsSpecification("is_active", True))
            .where(lambda p: p.price > 5)
            .order_by_desc("price")
        )
        found = await repo.get_all_sql("SELECT * FROM products WHERE category_id IS NOT NULL", None, spec)
        assert _names(found) == ["Chess", "Atlas", "Dune"]

    async def test_get_by_sql(self, repo, products):
        found = await repo.get_by_sql("SELECT * FROM products WHERE name = :name", {"name": "Atlas"})
        assert found.id == 1
        assert await repo.get_by_sql("SELECT * FROM products WHERE 1 = 0") is None

    async def test_get_all_queryable_sql_is_composable(self, repo, products):
        statement = repo.get_all_queryable_sql("SELECT * FROM products", specification=None)
        assert len(await repo.get_all_by_queryable(statement.limit(2))) == 2

    async def test_get_all_sql_other_entity(self, repo, products):
        found = await repo.get_all_sql("SELECT * FROM categories", entity=Category)
        assert sorted(_names(found)) == ["Books", "Games"]


class TestPaging:
    async def test_get_paged_result_defaults_to_primary_key_order(self, repo, products):
        paged = await repo.get_paged_result(Page(number=2, size=2))

        assert _names(paged.items) == ["Dune", "Go board"]
        assert paged.total == 5
        assert paged.total_pages == 3
        assert paged.has_next
        assert paged.has_previous

    async def test_get_paged_result_counts_filtered_rows(self, repo, products):
        spec = CoreSpecification(FieldEqualsSpecification("is_active", True)).order_by_desc("price")

        paged = await repo.get_paged_result(Page(number=1, size=2), spec)

        assert _names(paged.items) == ["Chess", "Atlas"]
        assert paged.total == 4
        assert paged.total_pages == 2

    async def test_page_overrides_specification_paging(self, repo, products):
        spec = CoreSpecification().paginate(skip=0, take=1)
        paged = await repo.get_paged_result(Page(number=1, size=3), spec)
        assert len(paged.items) == 3
        assert paged.total == 5

    async def test_last_page(self, repo, products):
        paged = await repo.get_paged_result(Page(number=3, size=2))
        assert _names(paged.items) == ["Notebook"]
        assert not paged.has_next

    async def test_get_paged_result_other_entity(self, repo, products):
        paged = await repo.get_paged_result(Page(number=1, size=1), entity=Category)
        assert _names(paged.items) == ["Books"]
        assert paged.total == 2

    async def test_get_paged_result_sql(self, repo, products):
        paged = await repo.get_paged_result_sql(
            Page(number=2, size=1),
            "SELECT * FROM products WHERE category_id = :category_id",
            {"category_id": 1},
        )
        assert _names(paged.items) == ["Dune"]
        assert paged.total == 2

    async def test_page_all(self, repo, products):
        spec = CoreSpecification(Product.price > 10)
        assert _names(await repo.page_all(Page(number=1, size=2), spec)) == ["Atlas", "Chess"]

    def test_page_all_queryable_applies_offset_and_limit(self, repo):
        statement = repo.page_all_queryable(Page(number=3, size=10))
        sql = str(statement.compile(compile_kwargs={"literal_binds": True}))

        assert "ORDER BY products.id" in sql
        assert "LIMIT 10 OFFSET 20" in sql


class TestTransactions:
    async def test_begin_transaction_rollback(self, repo):
        transaction = await repo.begin_transaction()
        await repo.add(Product(name="Lamp", price=20.0, created_at=date(2024, 6, 1)))
        await transaction.rollback()

        assert await repo.count_all() == 0

    async def test_begin_transaction_twice_raises(self, repo):
        await repo.begin_transaction()
        with pytest.raises(InvalidRequestError):
            await repo.begin_transaction()
