"""CRUD 基类：为各实体提供通用的数据访问方法。"""

from typing import Any, Dict, Generic, Type, TypeVar

from sqlalchemy.orm import Query, Session

from app.packages.drive.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。

    带有 ``owner_id`` 字段的模型一律通过 :meth:`owned` 访问，调用方必须显式传入归属用户。
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def hard_delete(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> None:
        """物理删除行。``auto_commit=False`` 时仅 flush，由调用方统一提交事务。"""
        db.delete(db_obj)
        if auto_commit:
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        else:
            db.flush()

    def query(self, db: Session) -> Query:
        return db.query(self.model)

    # 按归属用户过滤的查询
    def owned(self, db: Session, owner_id: str) -> Query:
        if not hasattr(self.model, "owner_id"):
            raise TypeError(f"{self.model.__name__} is not owner-scoped")
        return self.query(db).filter(self.model.owner_id == owner_id)
