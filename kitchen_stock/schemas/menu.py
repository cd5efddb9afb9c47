from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class RecipeIngredientIn(BaseModel):
    product_id: str
    quantity: Decimal = Field(ge=0)


class ProductIngredient(BaseModel):
    type: Literal["product"] = "product"
    product_id: str
    quantity: Decimal = Field(ge=0)


class RecipeIngredient(BaseModel):
    type: Literal["recipe"] = "recipe"
    recipe_id: str
    quantity: Decimal = Field(ge=0)


DishIngredient = Annotated[Union[ProductIngredient, RecipeIngredient], Field(discriminator="type")]
dish_ingredients_adapter = TypeAdapter(list[DishIngredient])


class RecipeLineOut(BaseModel):
    product_id: str
    quantity: float


class ProductIngredientOut(BaseModel):
    type: Literal["product"] = "product"
    product_id: str
    quantity: float


class RecipeIngredientOut(BaseModel):
    type: Literal["recipe"] = "recipe"
    recipe_id: str
    quantity: float


DishIngredientOut = Annotated[Union[ProductIngredientOut, RecipeIngredientOut], Field(discriminator="type")]


class RecipeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    ingredients: list[RecipeIngredientIn] = Field(default_factory=list)
    weight_adjustment: Decimal = Field(default=Decimal("0"), gt=Decimal("-100"), le=500)


class RecipeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    ingredients: Optional[list[RecipeIngredientIn]] = None
    weight_adjustment: Optional[Decimal] = Field(default=None, gt=Decimal("-100"), le=500)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "RecipeUpdate":
        if self.name is None and self.ingredients is None and self.weight_adjustment is None:
            raise ValueError("At least one field must be provided")
        return self


class RecipeOut(BaseModel):
    id: str
    name: str
    ingredients: list[RecipeLineOut]
    weight_adjustment: float
    created_at: datetime
    updated_at: datetime


class DishCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    ingredients: list[DishIngredient] = Field(default_factory=list)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Margherita",
                "selling_price": 9.5,
                "ingredients": [
                    {"type": "product", "product_id": "mozzarella-id", "quantity": 0.12},
                    {"type": "recipe", "recipe_id": "pizza-dough-id", "quantity": 0.25},
                ],
            }
        }
    )


class DishUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    ingredients: Optional[list[DishIngredient]] = None
    selling_price: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "DishUpdate":
        if self.name is None and self.ingredients is None and self.selling_price is None:
            raise ValueError("At least one field must be provided")
        return self


class DishOut(BaseModel):
    id: str
    name: str
    ingredients: list[DishIngredientOut]
    selling_price: float
    created_at: datetime
    updated_at: datetime
