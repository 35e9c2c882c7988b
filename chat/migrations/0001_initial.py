import uuid

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(default="New Conversation", max_length=200)),
                (
                    "provider",
                    models.CharField(
                        choices=[("openai", "OpenAI GPT"), ("anthropic", "Anthropic Claude"), ("gemini", "Google Gemini")],
                        max_length=16,
                    ),
                ),
                ("model", models.CharField(max_length=100)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("message_count", models.PositiveIntegerField(default=0)),
            ],
            options={"ordering": ["-updated_at"]},
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("user", "User"), ("assistant", "Assistant")], max_length=10)),
                ("content", models.TextField()),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "provider",
                    models.CharField(
                        blank=True,
                        choices=[("openai", "OpenAI GPT"), ("anthropic", "Anthropic Claude"), ("gemini", "Google Gemini")],
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="messages", to="chat.conversation"),
                ),
            ],
            options={"ordering": ["timestamp", "id"]},
        ),
        migrations.AddIndex(
            model_name="conversation",
            index=models.Index(fields=["updated_at"], name="chat_conv_updated_idx"),
        ),
        migrations.AddIndex(
            model_name="message",
            index=models.Index(fields=["conversation", "timestamp"], name="chat_msg_conv_ts_idx"),
        ),
    ]
