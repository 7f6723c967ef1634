from httpx import ASGITransport, AsyncClient

from server import create_app

from conftest import auth_headers

async def test_register_login_and_me(client, db):
    register = await client.post("/api/auth/register", json={
        "username": "kari",
        "email": "kari@uio.no",
        "password": "hemmelig123",
        "university": "UiO",
    })
    assert register.status_code == 200
    assert register.json()["token_type"] == "bearer"

    stored = await db.users.find_one({"email": "kari@uio.no"})
    assert stored["hashed_password"] != "hemmelig123"
    assert "password" not in stored

    login = await client.post("/api/auth/login", json={"email": "kari@uio.no", "password": "hemmelig123"})
    assert login.status_code == 200

    token = login.json()["access_token"]
    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "kari"

async def test_register_rejects_duplicates(client):
    user = {"username": "ola", "email": "ola@ntnu.no", "password": "pw"}
    assert (await client.post("/api/auth/register", json=user)).status_code == 200

    duplicate = await client.post("/api/auth/register", json=dict(user, username="ola2"))
    assert duplicate.status_code == 400

async def test_login_rejects_wrong_password(client):
    await client.post("/api/auth/register", json={"username": "per", "email": "per@uib.no", "password": "right"})

    response = await client.post("/api/auth/login", json={"email": "per@uib.no", "password": "wrong"})
    assert response.status_code == 400

async def test_invalid_token_is_rejected(client):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401

async def test_tokens_use_the_app_signing_secret(settings, db, processor, storage, metadata_service, buyer):
    config = settings.model_copy(update={"JWT_SECRET": "per-deployment-secret"})
    app = create_app(config=config, db=db, payment_processor=processor,
                     metadata_service=metadata_service, storage=storage)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        accepted = await client.get("/api/auth/me", headers=auth_headers(buyer, config))
        rejected = await client.get("/api/auth/me", headers=auth_headers(buyer))

    assert accepted.status_code == 200
    assert accepted.json()["id"] == buyer.id
    assert rejected.status_code == 401
