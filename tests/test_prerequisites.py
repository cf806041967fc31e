"""Tests for the Prerequisite Evaluator and the per-context failure policy.

Covers:
- Missing required fields, one violation per field, in group/field order
- Conditional visibility: a hidden field never produces a violation
- Checklist completeness for activation and project creation
- Structural checks for invoices and proposals
- Storage failures: StorageUnavailable, fail-closed activation, fail-open proposals
- System checks for the failure policy table
- The JSON endpoint
"""
from unittest.mock import patch

from cryptography.fernet import Fernet
from django.core.checks import run_checks
from django.db import DatabaseError
from django.test import TestCase, override_settings

import bizops.encryption as enc_module
from apps.checklists.models import ChecklistInstance, ChecklistItem
from apps.customers.models import Customer
from apps.customers.services import add_portal_contact
from apps.fields.registry import add_to_group, create_group, deactivate_field, register_field
from apps.prerequisites.checks import check_failure_policy_coverage, check_failure_policy_overrides
from apps.prerequisites.evaluator import (
    CHECKLIST_INCOMPLETE,
    MISSING_REQUIRED_FIELD,
    STORAGE_UNAVAILABLE,
    STRUCTURAL,
    check_prerequisites,
)
from apps.prerequisites.policy import FAIL_CLOSED, FAIL_OPEN, gate, get_failure_policy
from bizops.exceptions import StorageUnavailable

TEST_KEY = Fernet.generate_key().decode()
ORG = "org-acme"
ACTIVATION = "LIFECYCLE_ACTIVATION"


def make_customer(name="Acme Corp", email="", org_id=ORG, **values):
    customer = Customer(org_id=org_id, custom_fields=values)
    customer.name = name
    customer.email = email
    customer.save()
    return customer


@override_settings(FIELD_ENCRYPTION_KEY=TEST_KEY)
class EncryptedTestCase(TestCase):

    def setUp(self):
        enc_module._fernet = None

    def tearDown(self):
        enc_module._fernet = None


class MissingFieldTest(EncryptedTestCase):

    def setUp(self):
        super().setUp()
        kyc = create_group(ORG, "CUSTOMER", "FICA / KYC", sort_order=0)
        self.id_number = register_field(ORG, "CUSTOMER", "ID Number", "TEXT", required_for_contexts=[ACTIVATION])
        self.address = register_field(ORG, "CUSTOMER", "Address", "TEXT", required_for_contexts=[ACTIVATION])
        self.vat = register_field(ORG, "CUSTOMER", "VAT Number", "TEXT", required_for_contexts=["INVOICE_GENERATION"])
        add_to_group(kyc, self.id_number)

    def test_all_missing_reports_each_field_once(self):
        customer = make_customer()
        check = check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk)
        self.assertFalse(check.passed)
        self.assertEqual([v.field_slug for v in check.violations], ["id_number", "address"])
        self.assertTrue(all(v.code == MISSING_REQUIRED_FIELD for v in check.violations))
        self.assertEqual(check.violations[0].group_name, "FICA / KYC")
        self.assertIsNone(check.violations[1].group_name)
        self.assertIn("Address", check.violations[1].resolution)

    def test_filled_fields_pass(self):
        customer = make_customer(id_number="8001015009087", address="1 Main Rd")
        check = check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk)
        self.assertTrue(check.passed)
        self.assertEqual(check.violations, [])

    def test_blank_values_are_missing(self):
        customer = make_customer(id_number="  ", address="1 Main Rd")
        check = check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk)
        self.assertEqual([v.field_slug for v in check.violations], ["id_number"])

    def test_deactivated_field_no_longer_required(self):
        deactivate_field(self.id_number)
        customer = make_customer(address="1 Main Rd")
        self.assertTrue(check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk).passed)

    def test_other_orgs_fields_do_not_apply(self):
        customer = make_customer(org_id="org-other")
        self.assertTrue(check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk).passed)

    def test_document_generation_with_no_rules_passes(self):
        customer = make_customer()
        self.assertTrue(check_prerequisites("DOCUMENT_GENERATION", "CUSTOMER", customer.pk).passed)

    def test_violation_as_dict_uses_camel_case(self):
        customer = make_customer()
        payload = check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk).as_dict()
        self.assertFalse(payload["passed"])
        self.assertEqual(payload["context"], ACTIVATION)
        self.assertEqual(payload["violations"][0]["fieldSlug"], "id_number")
        self.assertEqual(payload["violations"][0]["entityType"], "CUSTOMER")
        self.assertEqual(payload["violations"][0]["entityId"], customer.pk)

    def test_non_customer_entity_not_supported(self):
        with self.assertRaises(ValueError):
            check_prerequisites(ACTIVATION, "PROJECT", 1)

    def test_unknown_context_rejected(self):
        customer = make_customer()
        with self.assertRaises(ValueError):
            check_prerequisites("PAINTING", "CUSTOMER", customer.pk)

    def test_missing_customer_raises_does_not_exist(self):
        with self.assertRaises(Customer.DoesNotExist):
            check_prerequisites(ACTIVATION, "CUSTOMER", 999999)


class ConditionalVisibilityTest(EncryptedTestCase):
    """A dependent field whose condition is false is skipped entirely."""

    def setUp(self):
        super().setUp()
        register_field(ORG, "CUSTOMER", "Entity Kind", "DROPDOWN", options=["company", "trust", "individual"])

    def _dependent(self, operator, value):
        return register_field(
            ORG, "CUSTOMER", "Registration Number", "TEXT",
            required_for_contexts=[ACTIVATION],
            visibility_condition={"dependsOnSlug": "entity_kind", "operator": operator, "value": value},
        )

    def _slugs(self, customer):
        return [v.field_slug for v in check_prerequisites(ACTIVATION, "CUSTOMER", customer.pk).violations]

    def test_equals(self):
        self._dependent("equals", "company")
        self.assertEqual(self._slugs(make_customer(entity_kind="company")), ["registration_number"])
        self.assertEqual(self._slugs(make_customer(entity_kind="individual")), [])

    def test_not_equals(self):
        self._dependent("not_equals", "individual")
        self.assertEqual(self._slugs(make_customer(entity_kind="trust")), ["registration_number"])
        self.assertEqual(self._slugs(make_customer(entity_kind="individual")), [])

    def test_in(self):
        self._dependent("in", ["company", "trust"])
        self.assertEqual(self._slugs(make_customer(entity_kind="trust")), ["registration_number"])
        self.assertEqual(self._slugs(make_customer(entity_kind="individual")), [])

    def test_not_in(self):
        self._dependent("not_in", ["individual"])
        self.assertEqual(self._slugs(make_customer(entity_kind="company")), ["registration_number"])
        self.assertEqual(self._slugs(make_customer(entity_kind="individual")), [])

    def test_missing_controlling_value_hides_dependent(self):
        self._dependent("not_equals", "individual")
        self.assertEqual(self._slugs(make_customer()), [])


class ChecklistTest(EncryptedTestCase):

    def setUp(self):
        super().setUp()
        self.customer = make_customer()
        self.checklist = ChecklistInstance.objects.create(org_id=ORG, customer=self.customer, name="Onboarding")
        self.signed = ChecklistItem.objects.create(instance=self.checklist, name="Engagement letter signed", sort_order=0)
        self.verified = ChecklistItem.objects.create(instance=self.checklist, name="ID verified", sort_order=1)
        self.optional = ChecklistItem.objects.create(
            instance=self.checklist, name="Welcome call", required=False, sort_order=2,
        )

    def test_open_required_items_block_activation(self):
        check = check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk)
        self.assertEqual([v.code for v in check.violations], [CHECKLIST_INCOMPLETE, CHECKLIST_INCOMPLETE])
        self.assertEqual(check.violations[0].group_name, "Onboarding")
        self.assertIn("Engagement letter signed", check.violations[0].message)

    def test_checklists_also_gate_project_creation(self):
        check = check_prerequisites("PROJECT_CREATION", "CUSTOMER", self.customer.pk)
        self.assertEqual(len(check.violations), 2)

    def test_checklists_do_not_gate_documents(self):
        self.assertTrue(check_prerequisites("DOCUMENT_GENERATION", "CUSTOMER", self.customer.pk).passed)

    def test_completed_items_pass(self):
        self.signed.complete("Admin")
        self.verified.complete("Admin")
        self.checklist.refresh_from_db()
        self.assertEqual(self.checklist.status, ChecklistInstance.COMPLETED)
        self.assertTrue(check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk).passed)

    def test_required_item_cannot_be_skipped(self):
        from django.core.exceptions import ValidationError

        with self.assertRaises(ValidationError):
            self.signed.skip()
        self.optional.skip()
        self.optional.refresh_from_db()
        self.assertEqual(self.optional.status, ChecklistItem.SKIPPED)

    def test_skipped_required_item_counts_as_resolved(self):
        ChecklistItem.objects.filter(pk=self.signed.pk).update(status=ChecklistItem.SKIPPED)
        self.verified.complete()
        self.assertTrue(check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk).passed)

    def test_cancelled_checklist_is_ignored(self):
        self.checklist.status = ChecklistInstance.CANCELLED
        self.checklist.save()
        self.assertTrue(check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk).passed)

    def test_field_violations_come_before_checklist(self):
        register_field(ORG, "CUSTOMER", "Address", "TEXT", required_for_contexts=[ACTIVATION])
        check = check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk)
        self.assertEqual(
            [v.code for v in check.violations],
            [MISSING_REQUIRED_FIELD, CHECKLIST_INCOMPLETE, CHECKLIST_INCOMPLETE],
        )


class StructuralCheckTest(EncryptedTestCase):

    def test_invoice_needs_an_email_somewhere(self):
        customer = make_customer()
        check = check_prerequisites("INVOICE_GENERATION", "CUSTOMER", customer.pk)
        self.assertEqual([v.code for v in check.violations], [STRUCTURAL])

    def test_invoice_passes_with_customer_email(self):
        customer = make_customer(email="billing@acme.example")
        self.assertTrue(check_prerequisites("INVOICE_GENERATION", "CUSTOMER", customer.pk).passed)

    def test_invoice_passes_with_portal_contact_email(self):
        customer = make_customer()
        add_portal_contact(customer, "Jane", email="jane@acme.example")
        self.assertTrue(check_prerequisites("INVOICE_GENERATION", "CUSTOMER", customer.pk).passed)

    def test_proposal_needs_active_contact_with_email(self):
        customer = make_customer(email="billing@acme.example")
        contact = add_portal_contact(customer, "Jane", email="jane@acme.example")
        contact.is_active = False
        contact.save()
        add_portal_contact(customer, "No Email")
        check = check_prerequisites("PROPOSAL_SEND", "CUSTOMER", customer.pk)
        self.assertEqual([v.code for v in check.violations], [STRUCTURAL])

        add_portal_contact(customer, "Sam", email="sam@acme.example")
        self.assertTrue(check_prerequisites("PROPOSAL_SEND", "CUSTOMER", customer.pk).passed)


class StorageFailureTest(EncryptedTestCase):

    def setUp(self):
        super().setUp()
        self.customer = make_customer()

    def test_database_error_raises_storage_unavailable(self):
        with patch("apps.prerequisites.evaluator.resolve_applicable", side_effect=DatabaseError("down")):
            with self.assertRaises(StorageUnavailable):
                check_prerequisites(ACTIVATION, "CUSTOMER", self.customer.pk)

    def test_activation_fails_closed(self):
        with patch("apps.prerequisites.evaluator.resolve_applicable", side_effect=DatabaseError("down")):
            check = gate(ACTIVATION, "CUSTOMER", self.customer.pk)
        self.assertFalse(check.passed)
        self.assertTrue(check.degraded)
        self.assertEqual([v.code for v in check.violations], [STORAGE_UNAVAILABLE])

    def test_proposal_fails_open(self):
        with patch("apps.prerequisites.evaluator.resolve_applicable", side_effect=DatabaseError("down")):
            check = gate("PROPOSAL_SEND", "CUSTOMER", self.customer.pk)
        self.assertTrue(check.passed)
        self.assertTrue(check.degraded)
        self.assertEqual(check.violations, [])

    def test_gate_passes_through_normal_results(self):
        check = gate("PROPOSAL_SEND", "CUSTOMER", self.customer.pk)
        self.assertFalse(check.passed)
        self.assertFalse(check.degraded)

    @override_settings(PREREQUISITE_FAILURE_POLICY={"PROPOSAL_SEND": "fail_closed"})
    def test_setting_overrides_policy(self):
        self.assertEqual(get_failure_policy("PROPOSAL_SEND"), FAIL_CLOSED)
        with patch("apps.prerequisites.evaluator.resolve_applicable", side_effect=DatabaseError("down")):
            self.assertFalse(gate("PROPOSAL_SEND", "CUSTOMER", self.customer.pk).passed)


class FailurePolicyTableTest(TestCase):

    def test_default_table(self):
        self.assertEqual(get_failure_policy(ACTIVATION), FAIL_CLOSED)
        for context in ("INVOICE_GENERATION", "PROPOSAL_SEND", "DOCUMENT_GENERATION", "PROJECT_CREATION"):
            self.assertEqual(get_failure_policy(context), FAIL_OPEN)

    def test_unknown_context_fails_closed(self):
        self.assertEqual(get_failure_policy("PAINTING"), FAIL_CLOSED)

    @override_settings(PREREQUISITE_FAILURE_POLICY={"PROPOSAL_SEND": "sometimes"})
    def test_invalid_override_fails_closed_and_errors(self):
        self.assertEqual(get_failure_policy("PROPOSAL_SEND"), FAIL_CLOSED)
        errors = check_failure_policy_overrides(None)
        self.assertEqual([e.id for e in errors], ["bizops.E002"])

    @override_settings(PREREQUISITE_FAILURE_POLICY={"PAINTING": "fail_open"})
    def test_unknown_override_context_errors(self):
        self.assertEqual([e.id for e in check_failure_policy_overrides(None)], ["bizops.E002"])

    def test_every_context_covered(self):
        self.assertEqual(check_failure_policy_coverage(None), [])

    def test_missing_entry_warns(self):
        with patch.dict("apps.prerequisites.checks.FAILURE_POLICY", clear=True):
            warnings = check_failure_policy_coverage(None)
        self.assertEqual(len(warnings), 5)
        self.assertEqual({w.id for w in warnings}, {"bizops.W001"})

    def test_registered_with_django(self):
        ids = {message.id for message in run_checks()}
        self.assertNotIn("bizops.W001", ids)
        self.assertNotIn("bizops.E002", ids)


class PrerequisiteViewTest(EncryptedTestCase):

    def test_get_check(self):
        register_field(ORG, "CUSTOMER", "Address", "TEXT", required_for_contexts=[ACTIVATION])
        customer = make_customer()
        response = self.client.get(f"/api/prerequisites/{ACTIVATION}/CUSTOMER/{customer.pk}/")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertFalse(data["passed"])
        self.assertEqual(data["violations"][0]["fieldSlug"], "address")

    def test_lowercase_path_segments_accepted(self):
        customer = make_customer()
        response = self.client.get(f"/api/prerequisites/lifecycle_activation/customer/{customer.pk}/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["passed"])

    def test_unknown_customer_is_404(self):
        response = self.client.get(f"/api/prerequisites/{ACTIVATION}/CUSTOMER/424242/")
        self.assertEqual(response.status_code, 404)

    def test_unsupported_entity_is_400(self):
        response = self.client.get(f"/api/prerequisites/{ACTIVATION}/PROJECT/1/")
        self.assertEqual(response.status_code, 400)

    def test_storage_failure_is_503(self):
        customer = make_customer()
        with patch("apps.prerequisites.evaluator.resolve_applicable", side_effect=DatabaseError("down")):
            response = self.client.get(f"/api/prerequisites/{ACTIVATION}/CUSTOMER/{customer.pk}/")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"], "storage_unavailable")
