"""
Демо-скрипт для поискового сервиса каталога
Загружает демо товары через API и прогоняет основные сценарии поиска
"""
import asyncio
import os

import httpx


API_URL = os.environ.get("API_URL", "http://localhost:8000")


# Демо данные - товары электроники
DEMO_PRODUCTS = [
    {
        "id": "p1",
        "name": "Wireless Headphones",
        "description": "Over-ear wireless headphones with active noise cancelling",
        "category": "audio",
        "brand": "Sony",
        "price": 99.99,
        "originalPrice": 129.99,
        "rating": 4.6,
        "numReviews": 812,
        "stock": 25,
        "tags": ["bluetooth", "noise cancelling"],
        "attributes": {"color": "black", "warranty": "2 years"},
        "sales": 340,
    },
    {
        "id": "p2",
        "name": "Wired Earbuds",
        "description": "Compact in-ear earbuds with a braided cable",
        "category": "audio",
        "brand": "Sony",
        "price": 19.99,
        "rating": 4.1,
        "numReviews": 230,
        "stock": 120,
        "tags": ["earbuds"],
        "sales": 910,
    },
    {
        "id": "p3",
        "name": "Headphones Wireless Charging Stand",
        "description": "Stand that charges wireless headphones and phones",
        "category": "accessories",
        "brand": "Anker",
        "price": 39.0,
        "rating": 4.3,
        "numReviews": 95,
        "stock": 0,
        "tags": ["charging", "stand"],
        "sales": 60,
    },
    {
        "id": "p4",
        "name": "Bluetooth Speaker Mini",
        "description": "Portable waterproof speaker with 12 hours of playback",
        "category": "audio",
        "brand": "JBL",
        "price": 59.5,
        "rating": 4.7,
        "numReviews": 1500,
        "stock": 40,
        "tags": ["bluetooth", "portable"],
        "attributes": {"color": "blue", "weight": "540g"},
        "sales": 1200,
    },
    {
        "id": "p5",
        "name": "Studio Monitor Headphones",
        "description": "Closed-back wired headphones for mixing and recording",
        "category": "audio",
        "brand": "Audio-Technica",
        "price": 149.0,
        "rating": 4.8,
        "numReviews": 2100,
        "stock": 8,
        "tags": ["studio"],
        "sales": 780,
    },
    {
        "id": "p6",
        "name": "Ultrabook 14 Pro",
        "description": "Lightweight laptop with a 14 inch display and all-day battery",
        "category": "laptops",
        "brand": "Apple",
        "price": 1999.0,
        "originalPrice": 2199.0,
        "rating": 4.9,
        "numReviews": 640,
        "stock": 5,
        "tags": ["laptop"],
        "attributes": {"model": "M3", "dimensions": "31x22x1.5 cm"},
        "sales": 150,
    },
]


async def index_demo_products():
    """Загрузка демо товаров"""
    print("\n📦 Загрузка демо товаров...")

    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{API_URL}/api/v1/index/products/bulk",
            json={"products": DEMO_PRODUCTS, "refresh": True},
            timeout=30.0
        )

        if response.status_code == 200:
            result = response.json()
            print(f"✓ Индексировано товаров: {result['indexed']}")
            if result["failed_ids"]:
                print(f"✗ Не проиндексированы: {', '.join(result['failed_ids'])}")
        else:
            print(f"✗ Ошибка: {response.text}")


async def demo_search(query: str, **params):
    """Поиск"""
    print(f"\n🔍 Поиск: '{query}' {params or ''}")

    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{API_URL}/api/v1/search",
            params={"q": query, "page_size": 5, **params}
        )

        if response.status_code != 200:
            print(f"   ✗ Ошибка: {response.text}")
            return

        result = response.json()
        if not result["meta"]["available"]:
            print("   ✗ Поиск недоступен")
            return

        print(f"   Найдено: {result['total']} товаров за {result['meta']['took_ms']}ms")
        for i, item in enumerate(result["documents"][:3], 1):
            name = item["highlights"].get("name", [item["name"]])[0]
            print(f"   {i}. {name}")
            print(f"      Цена: ${item['price']} | Скор: {item['score']}")

        categories = ", ".join(
            f"{c['value']} ({c['count']})" for c in result["facets"].get("categories", [])
        )
        print(f"   Категории: {categories}")


async def demo_suggest(prefix: str):
    """Подсказки"""
    print(f"\n💡 Подсказки для: '{prefix}'")

    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{API_URL}/api/v1/suggest",
            params={"q": prefix, "limit": 5}
        )

        if response.status_code == 200:
            suggestions = [s["text"] for s in response.json()["suggestions"]]
            print(f"   Подсказки: {', '.join(suggestions) or '-'}")
        else:
            print(f"   ✗ Ошибка: {response.text}")


async def demo_similar(product_id: str):
    """Похожие товары"""
    print(f"\n🧲 Похожие на: '{product_id}'")

    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{API_URL}/api/v1/products/{product_id}/similar",
            params={"limit": 3}
        )

        if response.status_code == 200:
            for item in response.json()["documents"]:
                print(f"   - {item['name']} (${item['price']})")
        else:
            print(f"   ✗ Ошибка: {response.text}")


async def main():
    """Главная функция"""
    print("=" * 60)
    print("🚀 Демо поискового сервиса каталога")
    print("=" * 60)

    # Проверка доступности API
    print("\n🔌 Проверка подключения к API...")
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{API_URL}/health", timeout=5.0)
    except httpx.HTTPError as e:
        print(f"✗ Ошибка подключения: {e}")
        print("\nУбедитесь, что сервис запущен:")
        print("  catalog-search-api")
        return

    health = response.json()
    if response.status_code != 200:
        print(f"✗ Поиск недоступен: {health}")
        return
    print(f"✓ API доступен: cluster={health['status']}, документов={health['documentCount']}")

    await index_demo_products()

    print("\n" + "=" * 60)
    print("ПОИСК")
    print("=" * 60)

    await demo_search("wireless headphones")
    await demo_search("wireles headphnes")
    await demo_search("headphones", max_price=100)
    await demo_search("headphones", sort="price", order="asc", in_stock=True)

    print("\n" + "=" * 60)
    print("ПОДСКАЗКИ")
    print("=" * 60)

    await demo_suggest("wire")
    await demo_suggest("blue")
    await demo_suggest("xyz123")

    print("\n" + "=" * 60)
    print("ПОХОЖИЕ ТОВАРЫ")
    print("=" * 60)

    await demo_similar("p1")

    print("\n" + "=" * 60)
    print("✓ Демо завершено")
    print("=" * 60)
    print(f"\nДокументация: {API_URL}/docs")


if __name__ == "__main__":
    asyncio.run(main())
