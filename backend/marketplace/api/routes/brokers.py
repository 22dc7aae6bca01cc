from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.database import get_db
from marketplace.core.deps import require_roles
from marketplace.models.user import User, UserRole
from marketplace.schemas.property import CommissionEntry, PerformanceReport
from marketplace.services.sales import broker_performance_report, list_broker_commissions

router = APIRouter(prefix="/brokers", tags=["brokers"])


@router.get("/me/commissions", response_model=list[CommissionEntry])
def my_commissions(db: Session = Depends(get_db), current_user: User = Depends(require_roles(UserRole.broker))):
    return list_broker_commissions(db, current_user.id)


@router.get("/me/performance", response_model=PerformanceReport)
def my_performance(db: Session = Depends(get_db), current_user: User = Depends(require_roles(UserRole.broker))):
    return broker_performance_report(db, current_user.id)
