def estimate(client, **overrides):
    payload = {
        "amount": "10000",
        "start_date": "2025-01-01",
        "end_date": "2025-01-06",
        "scheme_slug": "scheme-2",
    }
    payload.update(overrides)
    return client.post("/api/loan-calculator/calculate", json=payload)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "Up and running!"}


def test_list_schemes(client):
    response = client.get("/api/loan-schemes?status=active")
    assert response.status_code == 200
    slugs = [s["slug"] for s in response.get_json()]
    assert slugs == ["scheme-1", "scheme-2", "scheme-3", "scheme-4"]


def test_get_scheme_by_slug_and_id(client):
    by_slug = client.get("/api/loan-schemes/scheme-4").get_json()
    assert by_slug["calculation_type"] == "day_basis_compound"
    by_id = client.get(f"/api/loan-schemes/{by_slug['id']}").get_json()
    assert by_id == by_slug
    assert client.get("/api/loan-schemes/nope").status_code == 404


def test_estimate_day_basis(client):
    response = estimate(client)
    assert response.status_code == 200
    body = response.get_json()
    assert body["totalMonths"] == 0.5
    assert body["totalInterest"] == 100
    assert body["interestReduction"] == 0
    assert body["additionalReduction"] == 0
    assert body["totalAmount"] == 10100
    assert body["interestRateLabel"] == "2.00% per month"


def test_estimate_with_reductions(client):
    response = estimate(
        client,
        scheme_slug="scheme-1",
        end_date="2025-04-01",
        interest_status="taken",
        reduction_amount="100",
    )
    body = response.get_json()
    assert body["totalInterest"] == 600
    assert body["interestReduction"] == 200
    assert body["additionalReduction"] == 100
    assert body["totalAmount"] == 10300


def test_estimate_by_scheme_id_with_form_body(client):
    scheme_id = client.get("/api/loan-schemes/scheme-1").get_json()["id"]
    response = client.post(
        "/api/loan-calculator/calculate",
        data={
            "amount": "10000",
            "start_date": "2025-01-10",
            "end_date": "2026-03-10",
            "scheme_id": str(scheme_id),
            "validity_months": "12",
        },
    )
    body = response.get_json()
    assert response.status_code == 200
    assert body["elapsedMonths"] == 14
    assert body["totalInterest"] == 2900
    assert body["finalInterestRate"] == 2.5


def test_inverted_range_is_a_400(client):
    response = estimate(client, start_date="2025-02-01", end_date="2025-01-01")
    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "INVALID_RANGE"
    assert body["message"] == "End date cannot be before start date."


def test_non_numeric_amount_is_a_400(client):
    response = estimate(client, amount="ten thousand")
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_AMOUNT"


def test_oversized_amount_is_a_400(client):
    response = estimate(client, amount="1e30", scheme_slug="scheme-1", end_date="2025-02-01")
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_AMOUNT"


def test_negative_reduction_is_a_400(client):
    response = estimate(client, reduction_amount="-5")
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_REDUCTION"


def test_bad_date_and_missing_scheme(client):
    assert estimate(client, end_date="tomorrow").get_json()["error"] == "INVALID_REQUEST"
    assert estimate(client, scheme_slug=None).get_json()["error"] == "INVALID_REQUEST"
    assert estimate(client, interest_status="maybe").get_json()["error"] == "INVALID_REQUEST"


def test_unknown_scheme_is_a_404(client):
    response = estimate(client, scheme_slug="scheme-42")
    assert response.status_code == 404
    assert response.get_json()["error"] == "UNKNOWN_SCHEME"


def test_closing_quote(client):
    response = client.post(
        "/api/loan-calculator/closing",
        json={
            "amount": 50000,
            "start_date": "2025-01-15",
            "closed_date": "2025-03-20",
            "scheme_slug": "scheme-1",
        },
    )
    body = response.get_json()
    assert response.status_code == 200
    assert body["closedDate"] == "2025-03-20"
    assert body["principalAmount"] == 50000
    assert body["totalInterest"] == 3000
    assert body["interestPaid"] == 3000
    assert body["totalPaidAmount"] == 53000


def test_accrued_interest(client):
    response = client.post(
        "/api/loan-calculator/accrued",
        json={
            "amount": "10000",
            "loan_date": "2025-01-01",
            "last_payment_date": "2025-03-01",
            "as_of": "2025-05-01",
            "scheme_slug": "scheme-1",
        },
    )
    body = response.get_json()
    assert body["interest"] == 400
    assert body["startDate"] == "2025-03-01"
    assert body["duration"] == "2 Months"


def test_scheme_admin_lifecycle(client):
    created = client.post(
        "/api/loan-schemes",
        json={
            "name": "Festival",
            "slug": "festival",
            "interest_rate": "1.5",
            "calculation_type": "tiered",
            "scheme_config": {"validity_months": 3, "surcharge_rate": "2"},
        },
    )
    assert created.status_code == 201
    scheme_id = created.get_json()["id"]

    duplicate = client.post(
        "/api/loan-schemes",
        json={"slug": "festival", "interest_rate": "1", "calculation_type": "flat"},
    )
    assert duplicate.status_code == 400

    updated = client.put(f"/api/loan-schemes/{scheme_id}", json={"status": "inactive"})
    assert updated.status_code == 200
    assert updated.get_json()["status"] == "inactive"
    assert estimate(client, scheme_slug="festival").status_code == 404

    assert client.delete(f"/api/loan-schemes/{scheme_id}").status_code == 204
    assert client.get(f"/api/loan-schemes/{scheme_id}").status_code == 404


def test_invalid_scheme_config_is_rejected(client):
    response = client.post(
        "/api/loan-schemes",
        json={
            "slug": "broken",
            "interest_rate": "2",
            "calculation_type": "day_basis_tiered",
            "scheme_config": {"thresholds": [{"days": 15, "fraction": 0.75}, {"days": 7, "fraction": 0.5}]},
        },
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_THRESHOLDS"
