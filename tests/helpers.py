"""HTTP helpers shared by the endpoint tests."""
from httpx import AsyncClient

PASSWORD = "password123"


async def register(client: AsyncClient, username: str, email: str | None = None) -> dict:
    """Register *username* and return the ``user`` payload (including its token)."""
    resp = await client.post("/api/users", json={"user": {
        "username": username,
        "email": email or f"{username}@mail.com",
        "password": PASSWORD,
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


def auth(user: dict) -> dict:
    return {"Authorization": f"Token {user['token']}"}


async def create_article(client: AsyncClient, user: dict, title: str, tags: list[str] | None = None) -> dict:
    resp = await client.post("/api/articles", headers=auth(user), json={"article": {
        "title": title,
        "description": f"About {title}",
        "body": f"Body of {title}",
        "tagList": tags or [],
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["article"]
