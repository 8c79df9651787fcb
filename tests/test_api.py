from __future__ import annotations

from decimal import Decimal

from tai_ledger.domain import Account, Role


def _h(acc: Account) -> dict[str, str]:
    return {"X-Account-Id": str(acc.id)}


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_register_and_me(client) -> None:
    r = client.post(
        "/api/accounts",
        json={"name": "Alice", "email": "alice@example.com", "password": "secret-pass"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["tai_id"].startswith("TAI")
    assert body["role"] == "user"
    assert Decimal(body["tai_balance"]) == 0
    assert "password_hash" not in body

    me = client.get("/api/accounts/me", headers={"X-Account-Id": str(body["id"])})
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"

    verified = client.post("/api/accounts/me/verify", headers={"X-Account-Id": str(body["id"])})
    assert verified.json()["email_verified"] is True


def test_register_duplicate_email_is_400(client) -> None:
    payload = {"name": "Alice", "email": "alice@example.com", "password": "secret-pass"}
    assert client.post("/api/accounts", json=payload).status_code == 201
    r = client.post("/api/accounts", json=payload)
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_operation"


def test_missing_or_unknown_identity_is_401(client) -> None:
    assert client.get("/api/wallet/balance").status_code == 401
    r = client.get("/api/wallet/balance", headers={"X-Account-Id": "9999"})
    assert r.status_code == 401
    assert r.json()["kind"] == "unauthorized"


def test_admin_routes_require_admin_role(client, make_account) -> None:
    user = make_account()
    r = client.get("/api/admin/users", headers=_h(user))
    assert r.status_code == 403
    assert r.json()["kind"] == "forbidden"


def test_wallet_flow(client, make_account) -> None:
    admin = make_account("admin", role=Role.ADMIN)
    alice = make_account("alice")
    bob = make_account("bob")

    r = client.post("/api/admin/fund", json={"account_id": alice.id, "tai_amount": "100"}, headers=_h(admin))
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["tai_balance"]) == Decimal("100")

    r = client.post(
        "/api/wallet/convert",
        json={"amount": "10", "from_currency": "TAI", "to_currency": "USDT"},
        headers=_h(alice),
    )
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["converted"]) == Decimal("6")
    assert Decimal(r.json()["usdt_balance"]) == Decimal("6")

    r = client.post(
        "/api/wallet/transfer",
        json={"recipient_tai_id": bob.tai_id, "amount": "5"},
        headers=_h(alice),
    )
    assert r.status_code == 200, r.text
    assert r.json()["recipient_name"] == "bob"

    r = client.get("/api/wallet/balance", headers=_h(bob))
    assert Decimal(r.json()["tai_balance"]) == Decimal("5")

    r = client.get("/api/wallet/balance", headers=_h(alice))
    assert Decimal(r.json()["tai_balance"]) == Decimal("85")

    r = client.get("/api/transactions", headers=_h(alice))
    types = [t["type"] for t in r.json()]
    assert types == ["transfer_sent", "conversion", "deposit"]


def test_error_bodies(client, make_account) -> None:
    alice = make_account("alice", tai=1)

    r = client.post(
        "/api/wallet/transfer",
        json={"recipient_tai_id": "TAINOBODY00", "amount": "1"},
        headers=_h(alice),
    )
    assert r.status_code == 404
    assert r.json()["kind"] == "recipient_not_found"

    r = client.post(
        "/api/wallet/convert",
        json={"amount": "5", "from_currency": "TAI", "to_currency": "USDT"},
        headers=_h(alice),
    )
    assert r.status_code == 400
    body = r.json()
    assert body["kind"] == "insufficient_funds"
    assert body["currency"] == "TAI"
    assert Decimal(body["available"]) == Decimal("1")

    r = client.post(
        "/api/wallet/convert",
        json={"amount": "-5", "from_currency": "TAI", "to_currency": "USDT"},
        headers=_h(alice),
    )
    assert r.status_code == 422

    r = client.post(
        "/api/wallet/transfer",
        json={"recipient_tai_id": alice.tai_id, "amount": "0.0000000000000000001"},
        headers=_h(alice),
    )
    assert r.status_code == 422


def test_mining_endpoints(client, make_account) -> None:
    alice = make_account()

    assert client.post("/api/mining/start", headers=_h(alice)).json()["mining_active"] is True
    assert client.post("/api/mining/start", headers=_h(alice)).status_code == 400

    r = client.post("/api/mining/claim", headers=_h(alice))
    assert r.status_code == 400
    assert r.json()["kind"] == "no_reward_yet"
    assert 0 < r.json()["minutes_left"] <= 60

    st = client.get("/api/mining/status", headers=_h(alice)).json()
    assert st["active"] is True

    r = client.post("/api/mining/stop", headers=_h(alice))
    assert r.status_code == 200
    assert Decimal(r.json()["reward"]) == 0


def test_withdrawal_admin_flow(client, make_account) -> None:
    admin = make_account("admin", role=Role.ADMIN)
    alice = make_account("alice", tai=50)

    r = client.post(
        "/api/wallet/withdraw",
        json={"amount": "50", "currency": "TAI", "address": "0xabc"},
        headers=_h(alice),
    )
    assert r.status_code == 201, r.text
    wid = r.json()["id"]
    assert r.json()["status"] == "pending"

    pending = client.get("/api/admin/withdrawals", headers=_h(admin)).json()
    assert [w["id"] for w in pending] == [wid]

    r = client.post(f"/api/admin/withdrawals/{wid}/process", json={"decision": "rejected"}, headers=_h(admin))
    assert r.status_code == 200
    assert r.json()["processed_by"] == admin.id

    r = client.post(f"/api/admin/withdrawals/{wid}/process", json={"decision": "approved"}, headers=_h(admin))
    assert r.status_code == 400

    r = client.post("/api/admin/withdrawals/9999/process", json={"decision": "approved"}, headers=_h(admin))
    assert r.status_code == 404

    assert Decimal(client.get("/api/wallet/balance", headers=_h(alice)).json()["tai_balance"]) == Decimal("50")
    assert client.get("/api/withdrawals", headers=_h(alice)).json()[0]["status"] == "rejected"


def test_staking_endpoints(client, make_account) -> None:
    admin = make_account("admin", role=Role.ADMIN)
    alice = make_account("alice", tai=100)

    r = client.post("/api/wallet/stake", json={"amount": "100"}, headers=_h(alice))
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "active"
    assert Decimal(body["expected_return"]) == Decimal("0.986301369863013698")

    listed = client.get("/api/stakings", headers=_h(alice)).json()
    assert [p["id"] for p in listed] == [body["id"]]

    # nothing has matured yet
    assert client.post("/api/admin/staking/settle", headers=_h(admin)).json() == []

    r = client.post(f"/api/wallet/stakings/{body['id']}/unstake", headers=_h(alice))
    assert r.status_code == 200
    assert r.json()["status"] == "withdrawn"
    assert Decimal(client.get("/api/wallet/balance", headers=_h(alice)).json()["tai_balance"]) == Decimal("100")


def test_referrals_and_stats(client, make_account) -> None:
    admin = make_account("admin", role=Role.ADMIN)
    ref = make_account("ref")
    make_account("newbie", referral_code=ref.referral_code)

    r = client.get("/api/referrals", headers=_h(ref)).json()
    assert r["total"] == 1
    assert Decimal(r["earnings"]) == Decimal("0.5")
    assert r["referrals"][0]["name"] == "newbie"

    stats = client.get("/api/admin/stats", headers=_h(admin)).json()
    assert stats["total_accounts"] == 3
    assert Decimal(stats["total_tai"]) == Decimal("0.5")

    users = client.get("/api/admin/users", headers=_h(admin)).json()
    assert len(users) == 3
