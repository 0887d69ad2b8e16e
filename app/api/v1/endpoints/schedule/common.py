"""
Common imports and dependencies for the schedule module.

This module centralizes shared imports used across the schedule endpoints
(authentication, database access, services and schemas).
"""

from typing import Any, List, Optional
from datetime import datetime
from fastapi import APIRouter, Body, Depends, Path, Query, status
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, get_current_user
from app.core.deps import (
    get_booking_service,
    get_class_instance_service,
    get_schedule_generator_service,
    verify_admin_access,
)
from app.db.redis_client import get_redis_client
from app.db.session import get_db
from app.services.booking import BookingService
from app.services.schedule import ClassInstanceService, schedule_template_service
from app.services.schedule_generator import ScheduleGeneratorService
from app.schemas.schedule import (
    ClassInstance,
    ClassInstanceCancelResult,
    GenerationReport,
    GenerationRequest,
    ScheduleTemplate,
    ScheduleTemplateCreate,
    ScheduleTemplateUpdate,
)
