"""
tests/test_marketplace_flow.py

End-to-end flow over HTTP against the in-memory database:
register and log in, post a bidding request, bid, accept, pay into escrow,
complete the service, release and withdraw.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status
from httpx import AsyncClient

from easyserve.catalog.models import Category


async def register_and_login(client: AsyncClient, email: str, name: str, role: str) -> dict[str, str]:
    response = await client.post(
        "/auth/register",
        json={"email": email, "password": "Secret123!", "name": name, "role": role},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text

    response = await client.post("/auth/login", json={"email": email, "password": "Secret123!"})
    assert response.status_code == status.HTTP_200_OK, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.mark.asyncio
async def test_bidding_to_withdrawal(
    async_client: AsyncClient, use_test_db: None, category: Category
) -> None:
    requester = await register_and_login(async_client, "ayesha@example.com", "Ayesha", "user")
    provider_a = await register_and_login(async_client, "kamran@example.com", "Kamran", "provider")
    provider_b = await register_and_login(async_client, "sana@example.com", "Sana", "provider")

    # Request & bids
    response = await async_client.post(
        "/service-requests",
        headers=requester,
        json={
            "categoryId": str(category.id),
            "description": "Bathroom pipes need replacing",
            "address": "House 22, Johar Town, Lahore",
            "requestType": "bidding",
            "biddingEndDate": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        },
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    request_id = response.json()["id"]
    assert response.json()["status"] == "open"

    response = await async_client.post(
        "/service-requests/bid",
        headers=provider_a,
        json={"serviceRequestId": request_id, "proposedAmount": 500},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text

    response = await async_client.post(
        "/service-requests/bid",
        headers=provider_b,
        json={"serviceRequestId": request_id, "proposedAmount": 400, "estimatedTime": "3 hours"},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    winning_bid_id = response.json()["id"]

    response = await async_client.post(
        "/service-requests/bid",
        headers=provider_b,
        json={"serviceRequestId": request_id, "proposedAmount": 350},
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["code"] == "DUPLICATE"

    response = await async_client.get(f"/service-requests/{request_id}/bids", headers=requester)
    assert [b["proposedAmount"] for b in response.json()] == [400.0, 500.0]

    # Acceptance
    response = await async_client.post(
        "/service-requests/accept-bid", headers=requester, json={"bidId": winning_bid_id}
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    accepted = response.json()
    assert accepted["request"]["status"] == "assigned"
    assert accepted["request"]["finalAmount"] == 400.0
    booking_id = accepted["booking"]["id"]

    response = await async_client.post(
        "/service-requests/accept-bid", headers=requester, json={"bidId": winning_bid_id}
    )
    assert response.status_code == status.HTTP_409_CONFLICT

    # Escrow
    response = await async_client.post(
        "/payments/initiate", headers=requester, json={"bookingId": booking_id}
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    assert response.json()["platformFee"] == 40.0
    assert response.json()["providerAmount"] == 360.0

    response = await async_client.get("/payments/wallet", headers=provider_b)
    assert response.json()["heldBalance"] == 360.0
    assert response.json()["balance"] == 0.0

    # Service lifecycle
    response = await async_client.put(
        f"/bookings/{booking_id}/status", headers=provider_a, json={"status": "in-progress"}
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await async_client.put(
        f"/bookings/{booking_id}/status", headers=provider_b, json={"status": "in-progress"}
    )
    assert response.status_code == status.HTTP_200_OK, response.text

    response = await async_client.post(
        f"/bookings/{booking_id}/messages", headers=requester, json={"text": "Please bring spare washers"}
    )
    assert response.status_code == status.HTTP_201_CREATED

    response = await async_client.post(
        "/payments/mark-completed", headers=provider_b, json={"bookingId": booking_id}
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["status"] == "completed"

    response = await async_client.post(
        "/payments/confirm-release",
        headers=requester,
        json={"bookingId": booking_id, "rating": 5, "review": "Quick and tidy"},
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["status"] == "payment-released"

    response = await async_client.get(f"/service-requests/{request_id}", headers=requester)
    assert response.json()["status"] == "completed"

    # Wallet & withdrawal
    response = await async_client.get("/payments/wallet", headers=provider_b)
    wallet = response.json()
    assert wallet["balance"] == 360.0
    assert wallet["heldBalance"] == 0.0
    assert wallet["totalEarned"] == 360.0
    assert [e["entryType"] for e in wallet["entries"]] == ["credit"]

    response = await async_client.post("/payments/withdraw", headers=provider_b, json={"amount": 1000})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "INSUFFICIENT_FUNDS"

    response = await async_client.post("/payments/withdraw", headers=provider_b, json={"amount": 360})
    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["balance"] == 0.0
    assert [e["status"] for e in response.json()["entries"]] == ["completed", "withdrawn"]

    response = await async_client.get("/bookings", headers=provider_a)
    assert response.json() == []


@pytest.mark.asyncio
async def test_provider_listing_and_rating(
    async_client: AsyncClient, use_test_db: None, category: Category
) -> None:
    requester = await register_and_login(async_client, "hina@example.com", "Hina", "user")
    provider = await register_and_login(async_client, "usman@example.com", "Usman", "provider")

    response = await async_client.put(
        "/auth/profile",
        headers=provider,
        json={"categoryId": str(category.id), "area": "Model Town", "price": 1200},
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    provider_id = response.json()["account"]["id"]
    assert response.json()["provider"]["categoryName"] == "Plumbing"

    response = await async_client.put("/auth/profile", headers=requester, json={"area": "DHA"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = await async_client.get(
        "/providers", headers=requester, params={"categoryId": str(category.id), "area": "model town"}
    )
    assert [p["id"] for p in response.json()] == [provider_id]
    response = await async_client.get("/providers", headers=requester, params={"price": 1000})
    assert response.json() == []

    # Fixed-price job, paid and rated
    response = await async_client.post(
        "/service-requests",
        headers=requester,
        json={
            "categoryId": str(category.id),
            "description": "Replace kitchen tap",
            "address": "House 4, Model Town, Lahore",
            "requestType": "fixed",
            "fixedAmount": 1200,
        },
    )
    request_id = response.json()["id"]
    response = await async_client.post(
        "/service-requests/accept-fixed", headers=provider, json={"requestId": request_id}
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    booking_id = response.json()["booking"]["id"]

    await async_client.post("/payments/initiate", headers=requester, json={"bookingId": booking_id})
    await async_client.put(
        f"/bookings/{booking_id}/status", headers=provider, json={"status": "in-progress"}
    )
    await async_client.post("/payments/mark-completed", headers=provider, json={"bookingId": booking_id})
    response = await async_client.post(
        "/payments/confirm-release",
        headers=requester,
        json={"bookingId": booking_id, "rating": 4},
    )
    assert response.status_code == status.HTTP_200_OK, response.text

    response = await async_client.get(f"/providers/{provider_id}", headers=requester)
    assert response.json()["rating"] == 4.0
    assert response.json()["reviewCount"] == 1
