from app.schemas.report import NOT_FOUND, InsurancePlanReport


class TestInsurancePlanReport:
    def test_empty_answer_falls_back_to_defaults(self):
        report = InsurancePlanReport.model_validate({})

        assert report.plan_overview.carrier == NOT_FOUND
        assert report.cost_sharing.deductible.in_network == NOT_FOUND
        assert report.coverage_details == []
        assert report.document_quality.image_quality == "poor"
        assert report.document_quality.is_readable is False

    def test_nulls_use_defaults(self):
        report = InsurancePlanReport.model_validate(
            {
                "planOverview": {"carrier": None, "planType": "HMO"},
                "prescriptionDrug": {"tiers": None, "mailOrder": "90-day supply"},
                "importantNotes": None,
            }
        )

        assert report.plan_overview.carrier == NOT_FOUND
        assert report.plan_overview.plan_type == "HMO"
        assert report.prescription_drug.tiers == []
        assert report.prescription_drug.mail_order == "90-day supply"
        assert report.important_notes == []

    def test_storage_uses_camel_case(self):
        report = InsurancePlanReport.model_validate(
            {
                "coverageDetails": [
                    {
                        "category": "Emergency",
                        "items": [{"service": "ER visit", "coverage": "$250 copay", "priorAuth": True}],
                    }
                ],
                "extractedFields": [{"fieldName": "Member ID prefix", "fieldValue": "XYZ", "confidence": "high"}],
            }
        )

        stored = report.to_storage()

        assert set(stored) == {
            "planOverview",
            "costSharing",
            "coverageDetails",
            "prescriptionDrug",
            "additionalBenefits",
            "importantNotes",
            "extractedFields",
            "documentQuality",
        }
        assert stored["coverageDetails"][0]["items"][0]["priorAuth"] is True
        assert stored["extractedFields"][0]["fieldName"] == "Member ID prefix"
        assert "outOfPocketMax" in stored["costSharing"]

    def test_snake_case_input_is_accepted(self):
        report = InsurancePlanReport.model_validate({"plan_overview": {"plan_name": "Silver 2000"}})
        assert report.plan_overview.plan_name == "Silver 2000"

    def test_response_schema_uses_aliases(self):
        schema = InsurancePlanReport.response_schema()
        assert "documentQuality" in schema["properties"]
        assert "document_quality" not in schema["properties"]
