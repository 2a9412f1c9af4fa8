"""ProfileRepository test suite — gated directory reads, own profile,
read-after-write, store-enforced permissions, avatar validation and toasts.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from hrdash.cache.schemas import QueryStatus
from hrdash.common.constants import ToastVariant, UserRole
from hrdash.common.exceptions import (
    FileTooLargeException,
    ForbiddenException,
    InvalidFileTypeException,
    NetworkException,
    NotFoundException,
    ValidationException,
)
from hrdash.profiles.schemas import AvatarUpload, ProfileUpdate
from hrdash.profiles.service import ProfileRepository, encode_avatar
from hrdash.store.service import StoreError
from tests.conftest import make_ctx, seed_user

MiB = 1024 * 1024


@pytest.fixture
def repo(store, cache) -> ProfileRepository:
    return ProfileRepository(store, cache)


# ═════════════════════════════════════════════════════════════════════
# 1. READS
# ═════════════════════════════════════════════════════════════════════


class TestListProfiles:

    async def test_hr_lists_all_profiles_by_name(self, repo, hr_user, employee_user):
        result = await repo.list_profiles(make_ctx(hr_user))
        assert result.status == QueryStatus.success
        assert [p.full_name for p in result.data] == ["Alice HR", "Bob Employee"]

    async def test_employee_directory_read_is_idle(self, repo, employee_user):
        result = await repo.list_profiles(make_ctx(employee_user))
        assert result.status == QueryStatus.idle
        assert result.data is None

    async def test_view_as_does_not_gate_the_directory(self, repo, hr_user, employee_user):
        ctx = make_ctx(hr_user)
        ctx.toggle_view_as()
        result = await repo.list_profiles(ctx)
        assert result.is_success
        assert len(result.data) == 2

    async def test_repeated_reads_share_one_fetch(self, repo, cache, hr_user):
        ctx = make_ctx(hr_user)
        await repo.list_profiles(ctx)
        await repo.list_profiles(ctx)
        assert cache.fetch_count(ctx.cache_scope, ("profiles",)) == 1


class TestSearchProfiles:

    @pytest.fixture
    async def people(self, db):
        await seed_user(db, full_name="Alexander", department="Engineering", join_date=date(2023, 3, 1))
        await seed_user(db, full_name="Bobby", department="Finance", join_date=date(2024, 6, 1))
        await seed_user(db, full_name="Carla", department="Sales", join_date=date(2025, 1, 1))

    async def test_name_fragment_is_case_insensitive(self, repo, hr_user, people):
        result = await repo.search_profiles(make_ctx(hr_user), name="ALEX")
        assert [p.full_name for p in result.data] == ["Alexander"]

    async def test_departments_and_join_window(self, repo, hr_user, people):
        result = await repo.search_profiles(
            make_ctx(hr_user),
            departments=["Finance", "Sales"],
            joined_from=date(2024, 1, 1),
            joined_to=date(2024, 12, 31),
        )
        assert [p.full_name for p in result.data] == ["Bobby"]

    async def test_no_criteria_is_the_directory_read(self, repo, cache, hr_user):
        ctx = make_ctx(hr_user)
        await repo.search_profiles(ctx)
        assert cache.fetch_count(ctx.cache_scope, ("profiles",)) == 1

    async def test_employee_search_is_idle(self, repo, employee_user, people):
        result = await repo.search_profiles(make_ctx(employee_user), name="Bob")
        assert result.is_idle

    async def test_profile_write_invalidates_searches(self, repo, hr_user, employee_user):
        ctx = make_ctx(hr_user)
        before = await repo.search_profiles(ctx, departments=["Finance"])
        assert before.data == []

        await repo.update_profile(ctx, employee_user["id"], ProfileUpdate(department="Finance"))
        after = await repo.search_profiles(ctx, departments=["Finance"])
        assert [p.full_name for p in after.data] == ["Bob Employee"]


class TestGetOwnProfile:

    async def test_returns_own_profile(self, repo, employee_user):
        result = await repo.get_own_profile(make_ctx(employee_user))
        assert result.is_success
        assert result.data.user_id == employee_user["id"]

    async def test_missing_profile_is_empty_success(self, db, repo):
        user = await seed_user(db, full_name="No Profile", with_profile=False)
        result = await repo.get_own_profile(make_ctx(user))
        assert result.is_success
        assert result.data is None

    async def test_store_outage_is_error_state(self, repo, employee_user):
        with patch.object(
            repo.store, "select",
            new=AsyncMock(side_effect=StoreError(StoreError.UNREACHABLE, "down")),
        ):
            result = await repo.get_own_profile(make_ctx(employee_user))
        assert result.is_error
        assert result.error_type == "network-error"


# ═════════════════════════════════════════════════════════════════════
# 2. UPDATE
# ═════════════════════════════════════════════════════════════════════


class TestUpdateProfile:

    async def test_update_is_visible_on_next_read(self, repo, hr_user, employee_user):
        hr = make_ctx(hr_user)
        employee = make_ctx(employee_user)
        before = await repo.get_own_profile(employee)
        assert before.data.department == "Engineering"
        await repo.list_profiles(hr)

        await repo.update_profile(
            hr, employee_user["id"], ProfileUpdate(department="Finance"),
        )

        after = await repo.get_own_profile(employee)
        assert after.data.department == "Finance"
        directory = await repo.list_profiles(hr)
        by_user = {p.user_id: p for p in directory.data}
        assert by_user[employee_user["id"]].department == "Finance"

    async def test_read_started_after_write_sees_the_write(self, repo, hr_user, employee_user):
        employee = make_ctx(employee_user)
        real_select = repo.store.select
        holding = asyncio.Event()
        release = asyncio.Event()

        async def slow_first_read(identity, table, **kwargs):
            rows = await real_select(identity, table, **kwargs)
            if not holding.is_set():
                holding.set()
                await release.wait()
            return rows

        with patch.object(repo.store, "select", new=AsyncMock(side_effect=slow_first_read)):
            early = asyncio.create_task(repo.get_own_profile(employee))
            await holding.wait()

            await repo.update_profile(
                make_ctx(hr_user), employee_user["id"], ProfileUpdate(phone="+1-555-0000"),
            )
            after = await repo.get_own_profile(employee)

            release.set()
            await early

        assert after.data.phone == "+1-555-0000"
        assert (await repo.get_own_profile(employee)).data.phone == "+1-555-0000"

    async def test_success_toast(self, repo, hr_user, employee_user):
        ctx = make_ctx(hr_user)
        profile = await repo.update_profile(
            ctx, employee_user["id"], ProfileUpdate(salary=Decimal("60000")),
        )
        assert profile.salary == Decimal("60000")
        [toast] = ctx.drain_toasts()
        assert toast.title == "Profile Updated"
        assert toast.variant == ToastVariant.default

    async def test_employee_edits_own_phone(self, repo, employee_user):
        ctx = make_ctx(employee_user)
        profile = await repo.update_profile(
            ctx, employee_user["id"], ProfileUpdate(phone="+1 555 0100"),
        )
        assert profile.phone == "+1 555 0100"

    async def test_employee_salary_write_is_forbidden_by_store(self, repo, employee_user):
        ctx = make_ctx(employee_user)
        with pytest.raises(ForbiddenException):
            await repo.update_profile(
                ctx, employee_user["id"], ProfileUpdate(salary=Decimal("999999")),
            )
        [toast] = ctx.drain_toasts()
        assert toast.title == "Error"
        assert toast.description == "Failed to update profile. Please try again."
        assert toast.variant == ToastVariant.destructive

    async def test_employee_cannot_reach_other_profile(self, repo, hr_user, employee_user):
        with pytest.raises(NotFoundException):
            await repo.update_profile(
                make_ctx(employee_user), hr_user["id"], ProfileUpdate(phone="000"),
            )

    async def test_unknown_user(self, repo, hr_user):
        with pytest.raises(NotFoundException):
            await repo.update_profile(
                make_ctx(hr_user), uuid.uuid4(), ProfileUpdate(phone="000"),
            )

    async def test_negative_balance_rejected_by_store(self, repo, hr_user, employee_user):
        ctx = make_ctx(hr_user)
        with pytest.raises(ValidationException):
            await repo.update_profile(
                ctx, employee_user["id"],
                ProfileUpdate(remaining_annual_leave=Decimal("-1")),
            )
        assert ctx.drain_toasts()[0].variant == ToastVariant.destructive

        result = await repo.get_own_profile(make_ctx(employee_user))
        assert result.data.remaining_annual_leave == Decimal("12.0")

    async def test_empty_patch_is_rejected(self, repo, hr_user):
        ctx = make_ctx(hr_user)
        with pytest.raises(ValidationException):
            await repo.update_profile(ctx, hr_user["id"], ProfileUpdate())
        assert ctx.drain_toasts()[0].title == "Error"

    async def test_network_failure_leaves_cache_untouched(
        self, repo, cache, hr_user, employee_user,
    ):
        ctx = make_ctx(hr_user)
        await repo.list_profiles(ctx)
        with patch.object(
            repo.store, "update",
            new=AsyncMock(side_effect=StoreError(StoreError.UNREACHABLE, "down")),
        ):
            with pytest.raises(NetworkException):
                await repo.update_profile(
                    ctx, employee_user["id"], ProfileUpdate(phone="000"),
                )
        assert not cache.get_state(ctx.cache_scope, ("profiles",)).is_invalidated
        assert ctx.drain_toasts()[0].title == "Error"


class TestProfileUpdateSchema:

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValueError):
            ProfileUpdate(shoe_size=9)

    def test_quarter_day_balance_is_rejected(self):
        with pytest.raises(ValueError):
            ProfileUpdate(remaining_sick_leave=Decimal("1.25"))

    def test_patch_holds_only_set_fields(self):
        patch_ = ProfileUpdate(phone=None, status="on_leave").to_patch()
        assert patch_ == {"phone": None, "status": "on_leave"}


# ═════════════════════════════════════════════════════════════════════
# 3. AVATAR
# ═════════════════════════════════════════════════════════════════════


class TestAvatar:

    def test_encode_returns_data_url(self):
        url = encode_avatar(AvatarUpload(content_type="image/png", content=b"\x89PNG"))
        assert url == "data:image/png;base64,iVBORw=="

    def test_non_image_is_rejected(self):
        with pytest.raises(InvalidFileTypeException):
            encode_avatar(AvatarUpload(content_type="application/pdf", content=b"%PDF"))

    def test_missing_content_type_is_rejected(self):
        with pytest.raises(InvalidFileTypeException):
            encode_avatar(AvatarUpload(content=b"x"))

    def test_oversized_image_is_rejected(self):
        with pytest.raises(FileTooLargeException) as exc_info:
            encode_avatar(AvatarUpload(content_type="image/jpeg", content=b"\0" * (3 * MiB)))
        assert exc_info.value.detail == "Image size must be less than 2MB"

    def test_declared_size_counts_past_truncated_content(self):
        upload = AvatarUpload(
            content_type="image/png",
            content=b"\0" * (2 * MiB + 1),
            declared_size=300 * MiB,
        )
        assert upload.size == 300 * MiB
        with pytest.raises(FileTooLargeException) as exc_info:
            encode_avatar(upload)
        assert str(300 * MiB) in exc_info.value.errors["file"][0]

    async def test_upload_sets_avatar_url(self, repo, employee_user):
        ctx = make_ctx(employee_user)
        await repo.get_own_profile(ctx)

        url = await repo.upload_avatar(
            ctx, employee_user["id"],
            AvatarUpload(content_type="image/jpeg", content=b"\xff" * MiB, filename="me.jpg"),
        )
        assert url.startswith("data:image/jpeg;base64,")

        result = await repo.get_own_profile(ctx)
        assert result.data.avatar_url == url
        [toast] = ctx.drain_toasts()
        assert toast.title == "Avatar Updated"

    async def test_rejected_upload_never_reaches_the_store(self, repo, employee_user):
        ctx = make_ctx(employee_user)
        with patch.object(repo.store, "update", new=AsyncMock()) as update:
            with pytest.raises(FileTooLargeException):
                await repo.upload_avatar(
                    ctx, employee_user["id"],
                    AvatarUpload(content_type="image/png", content=b"\0" * (3 * MiB)),
                )
        update.assert_not_called()
        [toast] = ctx.drain_toasts()
        assert toast.title == "Upload Failed"
        assert toast.description == "Image size must be less than 2MB"

    async def test_wrong_type_toast(self, repo, employee_user):
        ctx = make_ctx(employee_user)
        with pytest.raises(InvalidFileTypeException):
            await repo.upload_avatar(
                ctx, employee_user["id"],
                AvatarUpload(content_type="text/plain", content=b"hello"),
            )
        assert ctx.drain_toasts()[0].description == "Please upload an image file"

    async def test_hr_uploads_for_another_user(self, repo, hr_user, employee_user):
        url = await repo.upload_avatar(
            make_ctx(hr_user, UserRole.hr), employee_user["id"],
            AvatarUpload(content_type="image/gif", content=b"GIF89a"),
        )
        result = await repo.get_own_profile(make_ctx(employee_user))
        assert result.data.avatar_url == url
