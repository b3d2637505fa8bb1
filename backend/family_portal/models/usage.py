from tortoise import fields, models

class UsageLog(models.Model):
    """
    One row per (user, usage period). Counters only ever grow; a new period
    key starts a fresh row, so there is no rollover job.
    """
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="usage_logs", on_delete=fields.CASCADE)
    period_key = fields.CharField(max_length=16)  # "YYYY-MM-DD" for the default UTC day strategy

    requests = fields.IntField(default=0)
    prompt_tokens = fields.IntField(default=0)
    completion_tokens = fields.IntField(default=0)
    total_tokens = fields.IntField(default=0)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "usage_logs"
        unique_together = (("user", "period_key"),)
