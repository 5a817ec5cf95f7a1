from pathlab.services import catalog as catalog_service


def test_search_prefers_substring_then_fuzzy(db_session, catalog):
    names = [test.name for test in catalog_service.search_tests(db_session, None, search="lipid profle")]
    assert names[0] == "Lipid Profile"
    assert "CBC" not in names

    exact = catalog_service.search_tests(db_session, None, search="sugar")
    assert [test.name for test in exact] == ["Blood Sugar"]


def test_lab_specific_tests_are_private(db_session, catalog, add_test_definition, make_lab):
    own = make_lab(code="east", name="East Lab")
    other = make_lab(code="west", name="West Lab")
    add_test_definition("Allergy Panel", "Immunology", "1500", lab_id=own["id"])

    assert "Allergy Panel" in [test.name for test in catalog_service.visible_tests(db_session, own["id"])]
    assert "Allergy Panel" not in [test.name for test in catalog_service.visible_tests(db_session, other["id"])]


def test_category_filter_and_listing(client, catalog, lab_admin_headers):
    tests = client.get("/api/catalog/tests", params={"category": "biochemistry"}, headers=lab_admin_headers)
    assert sorted(item["name"] for item in tests.json()["data"]) == ["Blood Sugar", "Lipid Profile"]

    categories = client.get("/api/catalog/categories", headers=lab_admin_headers).json()["data"]
    assert categories == ["Biochemistry", "Clinical Pathology", "Haematology"]


def test_lab_admin_adds_lab_test(client, lab, lab_admin_headers):
    response = client.post(
        "/api/catalog/tests",
        json={"name": "Allergy Panel", "category": "Immunology", "price": "1500", "shared": True},
        headers=lab_admin_headers,
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["labId"] == lab["id"]
    # Only a SuperAdmin can publish to every lab.
    assert data["shared"] is False
