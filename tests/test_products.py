from decimal import Decimal

import pytest

from storefront.application.manage_cart import AddCartItemUseCase, GetCartUseCase
from storefront.application.manage_products import (
    CreateProductDTO, UpdateProductDTO, CreateProductUseCase, UpdateProductUseCase, DeleteProductUseCase,
    GetProductUseCase, ListProductsUseCase, ListCategoriesUseCase,
)
from storefront.domain.exceptions import ValidationError, ProductNotFoundError, OutOfStockError


@pytest.mark.asyncio
async def test_create_and_get(uow):
    created = await CreateProductUseCase(uow)(
        CreateProductDTO(name=" Basmati Rice ", price=Decimal("120.50"), category="Grains", stock=8)
    )

    product = await GetProductUseCase(uow)(created.id)

    assert product.name == "Basmati Rice"
    assert product.price == Decimal("120.50")
    assert product.stock == 8


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "price": "1", "category": "Fruits"},
        {"name": "x" * 101, "price": "1", "category": "Fruits"},
        {"name": "Apples", "price": "-1", "category": "Fruits"},
        {"name": "Apples", "price": "1.005", "category": "Fruits"},
        {"name": "Apples", "price": "1", "category": "Fruits", "stock": -2},
    ],
)
async def test_create_rejects_bad_details(uow, payload):
    with pytest.raises(ValidationError):
        await CreateProductUseCase(uow)(CreateProductDTO(**payload))


class TestUpdate:
    @pytest.mark.asyncio
    async def test_details_change_without_touching_stock(self, uow, make_product):
        apples = await make_product(stock=7)

        updated = await UpdateProductUseCase(uow)(apples.id, UpdateProductDTO(price=Decimal("90")))

        assert updated.price == Decimal("90")
        assert updated.stock == 7

    @pytest.mark.asyncio
    async def test_stock_delta_is_relative(self, uow, make_product):
        apples = await make_product(stock=7)
        update = UpdateProductUseCase(uow)

        await update(apples.id, UpdateProductDTO(stock_delta=5))
        updated = await update(apples.id, UpdateProductDTO(stock_delta=-10))

        assert updated.stock == 2

    @pytest.mark.asyncio
    async def test_stock_never_goes_negative(self, uow, make_product, stock_of):
        apples = await make_product(stock=3)

        with pytest.raises(OutOfStockError):
            await UpdateProductUseCase(uow)(apples.id, UpdateProductDTO(name="Red Apples", stock_delta=-4))

        assert await stock_of(apples.id) == 3
        assert (await GetProductUseCase(uow)(apples.id)).name == "Apples"

    @pytest.mark.asyncio
    async def test_unknown_product(self, uow):
        with pytest.raises(ProductNotFoundError):
            await UpdateProductUseCase(uow)("missing", UpdateProductDTO(stock_delta=1))


@pytest.mark.asyncio
async def test_delete_drops_cart_lines(uow, make_user, make_product):
    user = await make_user()
    apples = await make_product()
    await AddCartItemUseCase(uow)(user.id, apples.id, 2)

    await DeleteProductUseCase(uow)(apples.id)

    with pytest.raises(ProductNotFoundError):
        await GetProductUseCase(uow)(apples.id)
    assert (await GetCartUseCase(uow)(user.id)).is_empty()
    with pytest.raises(ProductNotFoundError):
        await DeleteProductUseCase(uow)(apples.id)


@pytest.mark.asyncio
async def test_listing_filters_and_pages(uow, make_product):
    await make_product(name="Green Apples", category="Fruits")
    await make_product(name="Red Apples", category="Fruits")
    await make_product(name="Bananas", category="Fruits")
    await make_product(name="Apple Juice", category="Drinks")
    list_products = ListProductsUseCase(uow)

    total, fruits = await list_products(category="Fruits", limit=2)
    assert total == 3
    assert len(fruits) == 2

    total, apples = await list_products(search="apple")
    assert total == 3
    assert {p.name for p in apples} == {"Green Apples", "Red Apples", "Apple Juice"}

    total, page = await list_products(category="Fruits", page=2, limit=2)
    assert total == 3
    assert len(page) == 1

    categories = {c.category: c.count for c in await ListCategoriesUseCase(uow)()}
    assert categories == {"Fruits": 3, "Drinks": 1}


@pytest.mark.asyncio
async def test_search_matches_wildcards_literally(uow, make_product):
    await make_product(name="Apples")
    await make_product(name="100% Orange Juice")
    list_products = ListProductsUseCase(uow)

    total, products = await list_products(search="%")
    assert total == 1
    assert products[0].name == "100% Orange Juice"

    total, _ = await list_products(search="_pples")
    assert total == 0


@pytest.mark.asyncio
async def test_sub_cent_price_update_rejected(uow, make_product):
    apples = await make_product(price="10")

    with pytest.raises(ValidationError):
        await UpdateProductUseCase(uow)(apples.id, UpdateProductDTO(price=Decimal("9.999")))

    assert (await GetProductUseCase(uow)(apples.id)).price == Decimal("10")
