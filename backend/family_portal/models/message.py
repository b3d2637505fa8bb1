from tortoise import fields, models

class Message(models.Model):
    id = fields.IntField(pk=True)  # Auto-increment; defines message order within a conversation
    conversation = fields.ForeignKeyField(
        "models.Conversation", related_name="messages", on_delete=fields.CASCADE
    )

    role = fields.CharField(max_length=16)  # "user" or "assistant"
    content = fields.TextField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "messages"
