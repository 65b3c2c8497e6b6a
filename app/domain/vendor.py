# app/domain/vendor.py
"""
Raw Vademecum payloads.

The vendor is loose about shapes: nested blocks go missing, come back as
`null`, as a single object where a list is expected (image) or as a list
where a single object is expected (price). Every nested field here is
optional and the before-validators fold the odd shapes into the expected
one, so downstream code only ever deals with `None` or the model.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _mapping_or_none(v: Any) -> Any:
    if isinstance(v, list):
        v = next((x for x in v if isinstance(x, dict)), None)
    return v if isinstance(v, dict) else None


def _number_or_none(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _text_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None


def _text_or_empty(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int, float)) else ""


def _dict_or_empty(v: Any) -> dict:
    return v if isinstance(v, dict) else {}


def _dict_list(v: Any) -> list:
    if isinstance(v, dict):
        v = [v]
    if not isinstance(v, list):
        return []
    return [x for x in v if isinstance(x, dict)]


def _image_list(v: Any) -> list:
    if isinstance(v, (dict, str)):
        v = [v]
    if not isinstance(v, list):
        return []
    out = []
    for x in v:
        if isinstance(x, str):
            out.append({"url": x})
        elif isinstance(x, dict):
            out.append(x)
    return out


OptNumber = Annotated[Optional[float], BeforeValidator(_number_or_none)]
OptText = Annotated[Optional[str], BeforeValidator(_text_or_none)]
OptFlag = Annotated[Optional[bool], BeforeValidator(lambda v: v if isinstance(v, bool) else None)]
VendorId = Optional[Union[int, str]]


class _VendorModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VendorProduct(_VendorModel):
    id: int
    name: str


class VendorNamed(_VendorModel):
    id: VendorId = None
    name: OptText = None


class VendorLicenseeCompany(VendorNamed):
    officialname: OptText = None
    website: OptText = None
    phone: OptText = None
    city: OptText = None


OptNamed = Annotated[Optional[VendorNamed], BeforeValidator(_mapping_or_none)]


class VendorIngredient(_VendorModel):
    id: VendorId = None
    name: Annotated[str, BeforeValidator(_text_or_empty)] = ""
    alternative_name: OptText = Field(None, alias="alternativeName")
    amount: OptNumber = None
    unit: OptNamed = None


class VendorImage(_VendorModel):
    url: OptText = None
    thumbnail_url: OptText = Field(None, alias="thumbnailUrl")


class VendorPrice(_VendorModel):
    retail: OptNumber = None
    currency_code: OptText = Field(None, alias="currencyCode")
    effective_date: OptText = Field(None, alias="effectiveDate")
    tax_percent: OptNumber = Field(None, alias="taxPercent")
    storage_based: OptFlag = Field(None, alias="storageBased")
    abroad_product: OptFlag = Field(None, alias="abroadProduct")


class VendorCardDetails(_VendorModel):
    drug_type: OptNamed = Field(None, alias="drugType")
    licensee_company: Annotated[
        Optional[VendorLicenseeCompany], BeforeValidator(_mapping_or_none)
    ] = Field(None, alias="licenseeCompany")
    prescription_type: OptNamed = Field(None, alias="prescriptionType")
    indication: OptText = None
    ingredients: Annotated[List[VendorIngredient], BeforeValidator(_dict_list)] = Field(default_factory=list)
    image: Annotated[List[VendorImage], BeforeValidator(_image_list)] = Field(default_factory=list)
    price: Annotated[Optional[VendorPrice], BeforeValidator(_mapping_or_none)] = None


class VendorProductCard(_VendorModel):
    product: VendorProduct
    card: Annotated[
        VendorCardDetails, BeforeValidator(_dict_or_empty)
    ] = Field(default_factory=VendorCardDetails)
