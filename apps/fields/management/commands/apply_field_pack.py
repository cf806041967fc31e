"""
Apply a field pack JSON to register field groups and definitions for an org.

Usage:
    python manage.py apply_field_pack <org_id>
    python manage.py apply_field_pack <org_id> --pack path/to/pack.json
    python manage.py apply_field_pack <org_id> --dry-run

Fields whose slug already exists for the org are left alone, so a pack can
be re-applied safely.
"""
import json
from pathlib import Path

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.fields.models import FieldDefinition, FieldGroup
from apps.fields.registry import add_to_group, create_group, register_field

DEFAULT_PACK = Path(__file__).resolve().parent.parent.parent / "packs" / "customer_compliance.json"


class Command(BaseCommand):
    help = "Register the field groups and definitions from a field pack for one org."

    def add_arguments(self, parser):
        parser.add_argument("org_id", help="Org to register the fields for.")
        parser.add_argument(
            "--pack",
            default=str(DEFAULT_PACK),
            help="Path to the pack JSON file (default: the customer compliance pack).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Preview what would be created without making changes.",
        )

    def handle(self, *args, **options):
        path = Path(options["pack"])
        if not path.exists():
            raise CommandError(f"Pack file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            try:
                pack = json.load(f)
            except json.JSONDecodeError as e:
                raise CommandError(f"Invalid JSON: {e}")

        if options["dry_run"]:
            groups = pack.get("groups", [])
            total = sum(len(g.get("fields", [])) for g in groups)
            self.stdout.write(self.style.WARNING(
                f"=== DRY RUN: {len(groups)} group(s), {total} field(s), no changes made ==="
            ))
            return

        try:
            summary = apply_field_pack(options["org_id"], pack, stdout=self.stdout)
        except ValidationError as e:
            raise CommandError(f"Pack rejected: {e}")

        self.stdout.write(self.style.SUCCESS("=== Field pack applied ==="))
        for key, value in summary.items():
            self.stdout.write(f"  {key}: {value}")


def apply_field_pack(org_id, pack, stdout=None):
    """Register a pack's groups and fields for ``org_id``. Returns a summary dict."""
    entity_type = pack.get("entity_type", "CUSTOMER")
    created_groups = created_fields = skipped = 0

    with transaction.atomic():
        for group_order, group_data in enumerate(pack.get("groups", [])):
            group = FieldGroup.objects.filter(org_id=org_id, slug=group_data["slug"]).first()
            if group is None:
                group = create_group(
                    org_id, entity_type, group_data["name"],
                    slug=group_data["slug"], sort_order=group_order,
                )
                created_groups += 1

            for field_order, field_data in enumerate(group_data.get("fields", [])):
                existing = FieldDefinition.objects.for_entity(org_id, entity_type).filter(
                    slug=field_data["slug"],
                ).first()
                if existing is not None:
                    skipped += 1
                    continue
                field = register_field(
                    org_id,
                    entity_type,
                    field_data["name"],
                    field_data["field_type"],
                    slug=field_data["slug"],
                    description=field_data.get("description", ""),
                    required_for_contexts=field_data.get("required_for_contexts", []),
                    options=field_data.get("options"),
                    validation=field_data.get("validation"),
                    visibility_condition=field_data.get("visibility_condition"),
                    sort_order=field_order,
                )
                add_to_group(group, field, sort_order=field_order)
                created_fields += 1
                if stdout:
                    stdout.write(f"  Registered {field.slug} in {group.name}")

    return {
        "Groups created": created_groups,
        "Fields created": created_fields,
        "Fields already present": skipped,
    }
