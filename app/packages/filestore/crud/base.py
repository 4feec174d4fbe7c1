"""CRUD 基类：为各实体提供通用的数据访问方法。

所有写操作都支持 ``auto_commit=False``，以便服务层把多步写入组合到同一个事务中，
由调用方统一 ``commit``/``rollback``。
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.packages.filestore.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self.query(db).filter(self.model.id == id).first()

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

    def delete_by_id(self, db: Session, id: Any, *, auto_commit: bool = True) -> int:
        """按主键物理删除，返回受影响行数（记录不存在时为 0）。"""
        affected = self.query(db).filter(self.model.id == id).delete(synchronize_session="fetch")
        if auto_commit:
            db.commit()
        return int(affected or 0)

    def query(self, db: Session):
        return db.query(self.model)
