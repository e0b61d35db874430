from django.contrib import admin

from .models import (
    Answer,
    Assignment,
    Course,
    CourseEnrollment,
    EducationMaterial,
    Group,
    GroupEnrollment,
    Notification,
    Submission,
)


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("name", "version", "created_at", "updated_at")
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at", "version")


@admin.register(CourseEnrollment)
class CourseEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("user", "course", "joined_at")
    list_filter = ("course",)
    search_fields = ("user__username", "course__name")
    readonly_fields = ("joined_at",)


class GroupEnrollmentInline(admin.TabularInline):
    model = GroupEnrollment
    extra = 0
    fields = ("user", "progress", "joined_at")
    readonly_fields = ("joined_at",)


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ("name", "course", "status", "start_date", "end_date")
    list_filter = ("status", "course")
    search_fields = ("name", "course__name")
    readonly_fields = ("created_at", "updated_at", "version")
    inlines = (GroupEnrollmentInline,)


@admin.register(GroupEnrollment)
class GroupEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("user", "group", "progress", "joined_at")
    list_filter = ("group__course",)
    search_fields = ("user__username", "group__name")


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ("name", "group", "status", "start_date", "end_date")
    list_filter = ("status", "group__course")
    search_fields = ("name", "group__name")
    readonly_fields = ("created_at", "updated_at", "version")


class AnswerInline(admin.StackedInline):
    model = Answer
    extra = 0
    readonly_fields = ("created_at",)


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ("user", "assignment", "grade", "is_checked", "created_at")
    list_filter = ("is_checked", "assignment__group")
    search_fields = ("user__username", "assignment__name")
    inlines = (AnswerInline,)


@admin.register(EducationMaterial)
class EducationMaterialAdmin(admin.ModelAdmin):
    list_display = ("name", "access", "course", "group", "uploaded_by", "uploaded_at")
    list_filter = ("access",)
    search_fields = ("name", "file_path")
    readonly_fields = ("file_path", "uploaded_at")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("name", "user", "is_read", "created_at")
    list_filter = ("is_read",)
    search_fields = ("name", "description", "user__username")
