"""
File: app/db/repositories/base.py
Description: 通用异步 Repository 基类 (CRUD)

所有领域的 Repository 继承此类，以减少样板代码。

特性：
- 泛型支持: BaseRepository[ModelType, CreateSchemaType, UpdateSchemaType]
- 纯异步: 基于 sqlalchemy.ext.asyncio
- 只 flush 不 commit: 事务边界由 Service 层控制
- update 操作自动过滤核心系统字段 (id, created_at, updated_at)

Created: 2026-03-02
"""

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    通用 CRUD 仓储基类。

    参数:
    - ModelType: SQLAlchemy 模型类 (如 User)
    - CreateSchemaType: 创建数据的 Pydantic 模型
    - UpdateSchemaType: 更新数据的 Pydantic 模型 (typed patch)
    """

    PROTECTED_FIELDS: ClassVar[set[str]] = {"id", "created_at", "updated_at"}

    def __init__(self, model: type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    # --------------------------------------------------------------------------
    # 查询操作 (Read)
    # --------------------------------------------------------------------------

    async def get(self, id: Any) -> ModelType | None:
        """根据主键 ID 查询单条记录"""
        return await self.session.get(self.model, id)

    async def exists(self, id: Any) -> bool:
        return await self.get(id) is not None

    async def list(
        self,
        *where: ColumnElement[bool],
        skip: int = 0,
        limit: int = 100,
    ) -> list[ModelType]:
        """
        分页查询记录列表 (按主键升序)。

        Args:
            where: 额外过滤条件
            skip: 偏移量
            limit: 返回的最大记录数
        """
        stmt = (
            select(self.model)
            .where(*where)
            .order_by(self.model.id)  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *where: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # --------------------------------------------------------------------------
    # 写入操作 (Create / Update / Delete)
    # --------------------------------------------------------------------------

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        持久化一个已构造的 ORM 对象。
        flush 以获取自增 ID，但不 commit。
        """
        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)
        return db_obj

    async def create(self, obj_in: CreateSchemaType, **extra: Any) -> ModelType:
        """
        由 Pydantic schema 创建新记录。
        extra 用于补充 schema 之外的字段 (如 hashed_password)。
        """
        obj_in_data = obj_in.model_dump(exclude_unset=True)
        obj_in_data.update(extra)
        return await self.add(self.model(**obj_in_data))

    async def update(
        self, db_obj: ModelType, obj_in: UpdateSchemaType | dict[str, Any]
    ) -> ModelType:
        """
        更新现有记录。
        支持传入 UpdateSchema 或字典，PROTECTED_FIELDS 中的字段会被过滤。
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        safe_data = {
            k: v for k, v in update_data.items() if k not in self.PROTECTED_FIELDS
        }
        db_obj.update(**safe_data)  # type: ignore[attr-defined]

        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)
        return db_obj

    async def delete(self, db_obj: ModelType) -> None:
        """
        物理删除记录。
        软删除模型 (SoftDeleteMixin) 不应调用此方法。
        """
        await self.session.delete(db_obj)
        await self.session.flush()
