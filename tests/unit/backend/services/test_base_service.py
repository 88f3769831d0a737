"""
Unit Tests for Base Service.

Tests the BaseService class methods and error handling.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from notekeeper.backend.services.base import BaseService
from notekeeper.backend.core.exceptions import (
    ConflictError,
    DatabaseError,
    ValidationError,
)


class TestBaseServiceInit:
    """Tests for BaseService initialization."""

    def test_init_stores_session(self):
        """Should store the provided session."""
        mock_session = AsyncMock()

        service = BaseService(mock_session)

        assert service._session is mock_session
        assert service.session is mock_session

    def test_init_creates_logger(self):
        """Should create a logger for the service."""
        mock_session = AsyncMock()

        service = BaseService(mock_session)

        assert service._logger is not None


class TestExecuteDbOperation:
    """Tests for _execute_db_operation method."""

    @pytest.fixture
    def service(self):
        """Create a BaseService instance."""
        return BaseService(AsyncMock())

    @pytest.mark.asyncio
    async def test_returns_result_on_success(self, service):
        """Should return the coroutine result on success."""
        async def successful_operation():
            return {"id": "123", "title": "test"}

        result = await service._execute_db_operation(
            "test_operation",
            successful_operation(),
        )

        assert result == {"id": "123", "title": "test"}

    @pytest.mark.asyncio
    async def test_raises_conflict_on_unique_violation(self, service):
        """Should raise ConflictError on unique constraint violation."""
        async def failing_operation():
            raise IntegrityError(
                "statement",
                {},
                Exception("UNIQUE constraint failed"),
            )

        with pytest.raises(ConflictError) as exc_info:
            await service._execute_db_operation(
                "create_note",
                failing_operation(),
            )

        assert "already exists" in str(exc_info.value.message)

    @pytest.mark.asyncio
    async def test_raises_conflict_on_duplicate_key(self, service):
        """Should raise ConflictError on duplicate key error."""
        async def failing_operation():
            raise IntegrityError(
                "statement",
                {},
                Exception("duplicate key value"),
            )

        with pytest.raises(ConflictError):
            await service._execute_db_operation(
                "create_note",
                failing_operation(),
            )

    @pytest.mark.asyncio
    async def test_raises_database_error_on_other_integrity_error(self, service):
        """Should raise DatabaseError on non-unique integrity errors."""
        async def failing_operation():
            raise IntegrityError(
                "statement",
                {},
                Exception("foreign key constraint"),
            )

        with pytest.raises(DatabaseError) as exc_info:
            await service._execute_db_operation(
                "update_note",
                failing_operation(),
            )

        assert "constraint violation" in str(exc_info.value.message)

    @pytest.mark.asyncio
    async def test_raises_database_error_on_sqlalchemy_error(self, service):
        """Should raise DatabaseError on general SQLAlchemy errors."""
        async def failing_operation():
            raise SQLAlchemyError("Connection lost")

        with pytest.raises(DatabaseError) as exc_info:
            await service._execute_db_operation(
                "list_notes",
                failing_operation(),
            )

        assert "operation failed" in str(exc_info.value.message)


class TestValidateRequired:
    """Tests for _validate_required method."""

    @pytest.fixture
    def service(self):
        """Create a BaseService instance."""
        return BaseService(AsyncMock())

    def test_passes_when_all_fields_present(self, service):
        """Should not raise when all required fields are present."""
        fields = {"title": "Groceries", "content": "milk"}

        # Should not raise
        service._validate_required(fields, ["title", "content"])

    def test_raises_when_field_missing(self, service):
        """Should raise ValidationError when field is missing."""
        fields = {"title": "Groceries"}

        with pytest.raises(ValidationError) as exc_info:
            service._validate_required(fields, ["title", "content"])

        assert "content" in exc_info.value.details["missing_fields"]

    def test_raises_when_field_is_none(self, service):
        """Should raise ValidationError when field is None."""
        fields = {"title": "Groceries", "content": None}

        with pytest.raises(ValidationError) as exc_info:
            service._validate_required(fields, ["title", "content"])

        assert "content" in exc_info.value.details["missing_fields"]

    def test_raises_when_string_field_is_empty(self, service):
        """Should raise ValidationError when string field is empty."""
        fields = {"title": "Groceries", "content": "   "}

        with pytest.raises(ValidationError) as exc_info:
            service._validate_required(fields, ["title", "content"])

        assert "content" in exc_info.value.details["missing_fields"]

    def test_reports_all_missing_fields(self, service):
        """Should report all missing fields, not just the first."""
        fields = {"other": "value"}

        with pytest.raises(ValidationError) as exc_info:
            service._validate_required(fields, ["title", "content", "created_at"])

        missing = exc_info.value.details["missing_fields"]
        assert "title" in missing
        assert "content" in missing
        assert "created_at" in missing


class TestLoggingMethods:
    """Tests for logging helper methods."""

    @pytest.fixture
    def service(self):
        """Create a BaseService instance."""
        return BaseService(AsyncMock())

    def test_log_operation_includes_service_name(self, service):
        """Should include service class name in log context."""
        with patch.object(service._logger, "info") as mock_info:
            service._log_operation("Creating note", note_id="123")

            mock_info.assert_called_once()
            call_kwargs = mock_info.call_args
            extra = call_kwargs[1]["extra"]
            assert extra["service"] == "BaseService"
            assert extra["note_id"] == "123"

    def test_log_debug_includes_service_name(self, service):
        """Should include service class name in debug log context."""
        with patch.object(service._logger, "debug") as mock_debug:
            service._log_debug("Processing step", step=1)

            mock_debug.assert_called_once()
            call_kwargs = mock_debug.call_args
            extra = call_kwargs[1]["extra"]
            assert extra["service"] == "BaseService"
            assert extra["step"] == 1


class TestServiceInheritance:
    """Tests for service inheritance patterns."""

    def test_subclass_can_access_session(self):
        """Subclass should be able to access the session."""
        class MyService(BaseService):
            def get_session(self):
                return self.session

        mock_session = AsyncMock()
        service = MyService(mock_session)

        assert service.get_session() is mock_session

    def test_subclass_inherits_validation_methods(self):
        """Subclass should inherit validation methods."""
        class MyService(BaseService):
            def validate_note(self, data: dict):
                self._validate_required(data, ["title"])

        service = MyService(AsyncMock())

        # Should not raise for valid data
        service.validate_note({"title": "Groceries"})

        # Should raise for invalid data
        with pytest.raises(ValidationError):
            service.validate_note({"title": "  "})
