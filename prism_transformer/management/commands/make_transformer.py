"""
Django management command to scaffold a transformer class.

Usage:
    python manage.py make_transformer ArticleSummarizer --app blog
    python manage.py make_transformer ReceiptExtractor --app billing --provider anthropic --force
"""

import re
from pathlib import Path

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from prism_transformer.enums import Provider

TEMPLATE = '''from prism_transformer import BaseTransformer, Provider


class {class_name}(BaseTransformer):
    """{description}"""

    def prompt(self) -> str:
        return "{prompt}"

    def provider(self) -> Provider:
        return Provider.{provider_member}
'''


def to_snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Command(BaseCommand):
    help = "Create a new transformer class in <app>/transformers/."

    def add_arguments(self, parser):
        parser.add_argument("name", type=str, help="Class name, e.g. ArticleSummarizer")
        parser.add_argument(
            "--app",
            type=str,
            required=True,
            help="Label of the installed app that will own the transformer",
        )
        parser.add_argument(
            "--provider",
            type=str,
            default=Provider.OPENAI.value,
            choices=[p.value for p in Provider],
            help="Provider returned by the generated provider() hook (default: openai)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite the module if it already exists",
        )

    def handle(self, *args, **options):
        class_name = options["name"]
        if not class_name.isidentifier() or not class_name[0].isupper():
            raise CommandError(f"'{class_name}' is not a valid class name")

        try:
            app_config = apps.get_app_config(options["app"])
        except LookupError as e:
            raise CommandError(str(e)) from e

        package_dir = Path(app_config.path) / "transformers"
        package_dir.mkdir(exist_ok=True)
        init_file = package_dir / "__init__.py"
        if not init_file.exists():
            init_file.write_text("")

        module_path = package_dir / f"{to_snake_case(class_name)}.py"
        if module_path.exists() and not options["force"]:
            raise CommandError(f"{module_path} already exists (use --force to overwrite)")

        provider = Provider(options["provider"])
        module_path.write_text(
            TEMPLATE.format(
                class_name=class_name,
                description=f"{class_name} transformer.",
                prompt="Transform the following content:",
                provider_member=provider.name,
            )
        )

        self.stdout.write(self.style.SUCCESS(f"Created {module_path}"))
