from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        Repository con operaciones CRUD por defecto.

        Las operaciones de escritura aceptan ``commit=False`` para participar
        en una transacción más amplia controlada por el servicio.
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Obtener un objeto por su ID.
        """
        return db.query(self.model).filter(self.model.id == id).first()

    def create(
        self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True
    ) -> ModelType:
        """
        Crear un nuevo registro.

        Args:
            db: Sesión de base de datos
            obj_in: Datos del objeto a crear (schema o diccionario)
            commit: Si es False solo se hace flush (el llamador controla la transacción)

        Returns:
            El objeto creado
        """
        # Usar model_dump() en lugar de jsonable_encoder() para preservar datetime aware
        if isinstance(obj_in, dict):
            obj_in_data = dict(obj_in)
        elif hasattr(obj_in, 'model_dump'):
            obj_in_data = obj_in.model_dump()
        else:
            obj_in_data = jsonable_encoder(obj_in)

        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Actualizar un registro con los campos presentes en ``obj_in``.
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def exists(self, db: Session, id: int) -> bool:
        """
        Verificar si un objeto existe.
        """
        query = db.query(self.model.id).filter(self.model.id == id)
        return db.query(query.exists()).scalar()
