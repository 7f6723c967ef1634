import app.routers.payments as payments_router

from conftest import auth_headers, completed_event, sign_payload

async def _complete_purchase(client, document, buyer, amount_total, payment_intent):
    payload = completed_event(document.id, buyer.id, amount_total=amount_total, payment_intent=payment_intent)
    response = await client.post(
        "/api/webhook",
        content=payload.encode(),
        headers={"Stripe-Signature": sign_payload(payload)},
    )
    assert response.status_code == 200

async def test_my_purchases_lists_documents_bought(client, document, buyer, other_user):
    await _complete_purchase(client, document, buyer, 1000, "pi_buyer")

    mine = await client.get("/api/my-purchases", headers=auth_headers(buyer))
    theirs = await client.get("/api/my-purchases", headers=auth_headers(other_user))

    assert mine.status_code == 200
    [entry] = mine.json()
    assert entry["purchase"]["payment_id"] == "pi_buyer"
    assert entry["document"]["title"] == document.title
    assert theirs.json() == []

async def test_sales_report_sums_seller_share(client, document, seller, buyer, other_user):
    await _complete_purchase(client, document, buyer, 1000, "pi_one")
    await _complete_purchase(client, document, other_user, 1000, "pi_two")

    response = await client.get("/api/sales", headers=auth_headers(seller))

    assert response.status_code == 200
    report = response.json()
    assert len(report["sales"]) == 2
    assert report["total_earnings"] == 1800

async def test_sales_report_empty_without_documents(client, buyer):
    response = await client.get("/api/sales", headers=auth_headers(buyer))

    assert response.json() == {"sales": [], "total_earnings": 0}

async def test_purchase_listing_requires_authentication(client):
    response = await client.get("/api/my-purchases")
    assert response.status_code == 401

async def test_sales_total_covers_sales_beyond_the_listing(client, monkeypatch, document, seller, buyer, other_user):
    monkeypatch.setattr(payments_router, "SALES_PAGE_SIZE", 1)
    await _complete_purchase(client, document, buyer, 1000, "pi_one")
    await _complete_purchase(client, document, other_user, 999, "pi_two")

    report = (await client.get("/api/sales", headers=auth_headers(seller))).json()

    assert len(report["sales"]) == 1
    # 900 + 899 (fee on 999 rounds half-up to 100)
    assert report["total_earnings"] == 1799
