from django.apps import AppConfig


class PrismTransformerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "prism_transformer"
    verbose_name = "Prism Transformer"

    def ready(self):
        # Import providers to populate the LLM provider registry
        import llm_providers  # noqa: F401
