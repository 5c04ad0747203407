from rest_framework import serializers
from .models import Break, StaffMember

class BreakSerializer(serializers.ModelSerializer):
    class Meta:
        model = Break
        fields = ["id", "day_of_week", "start_time", "end_time"]


class StaffMemberSerializer(serializers.ModelSerializer):
    skills = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    working_days = serializers.ListField(source="working_day_names", read_only=True)
    breaks = BreakSerializer(many=True, read_only=True)

    class Meta:
        model = StaffMember
        fields = ["id", "name", "role", "branch", "skills", "working_days", "work_start", "work_end", "breaks"]
