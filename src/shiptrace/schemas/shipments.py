"""Shipment request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeoPointModel(BaseModel):
    type: Literal["Point"]
    coordinates: List[float] = Field(..., min_length=2, max_length=3, description="[longitude, latitude]")


class AddressModel(BaseModel):
    full: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class OriginModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    address: Optional[AddressModel] = None
    location: Optional[GeoPointModel] = None


class DestinationModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    receiverName: Optional[str] = None
    receiverEmail: Optional[str] = None
    address: Optional[AddressModel] = None
    location: Optional[GeoPointModel] = None
    expectedDeliveryDate: Optional[datetime] = None
    city: Optional[str] = Field(default=None, description="Shorthand for address.city on updates.")


class CheckpointModel(BaseModel):
    city: str
    location: Optional[GeoPointModel] = None
    eta: Optional[datetime] = None
    zip: Optional[str] = None


class HistoryEntryModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: Optional[str] = None
    city: Optional[str] = None
    location: Optional[GeoPointModel] = None
    note: Optional[str] = None
    by: Optional[str] = None


class ShipmentCreateRequest(BaseModel):
    """Admin create payload. Origin and destination may be nested or sent as flat fields."""

    model_config = ConfigDict(extra="ignore")

    trackingId: Optional[str] = None
    serviceType: Optional[str] = None
    shipmentDetails: Optional[str] = None
    productDescription: Optional[str] = None
    product: Optional[str] = None
    quantity: Optional[float] = None
    weightKg: Optional[float] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    image: Optional[str] = None
    updatedBy: Optional[str] = None
    originWarehouse: Optional[str] = None

    origin: Optional[OriginModel] = None
    originName: Optional[str] = None
    originAddressFull: Optional[str] = None
    originCity: Optional[str] = None
    originState: Optional[str] = None
    originZip: Optional[str] = None
    originLat: Optional[float] = None
    originLng: Optional[float] = None

    destination: Optional[DestinationModel] = None
    receiverName: Optional[str] = None
    receiverEmail: Optional[str] = None
    customerName: Optional[str] = None
    customerEmail: Optional[str] = None
    destAddressFull: Optional[str] = None
    destCity: Optional[str] = None
    destState: Optional[str] = None
    destZip: Optional[str] = None
    destLat: Optional[float] = None
    destLng: Optional[float] = None
    destExpectedDeliveryDate: Optional[datetime] = None
    expectedDeliveryDate: Optional[datetime] = None

    address: Optional[AddressModel] = None

    route: Optional[List[CheckpointModel]] = None
    # Unparsable values are dropped by the progress engine rather than rejected here.
    currentIndex: Optional[Any] = None
    currentLocation: Optional[GeoPointModel] = None
    shipmentDate: Optional[datetime] = None
    status: Optional[str] = None
    initialStatus: Optional[str] = None
    locationHistory: Optional[List[HistoryEntryModel]] = None


class ShipmentPatchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    serviceType: Optional[str] = None
    shipmentDetails: Optional[str] = None
    productDescription: Optional[str] = None
    quantity: Optional[float] = None
    weightKg: Optional[float] = None
    description: Optional[str] = None
    shipmentDate: Optional[datetime] = None
    expectedDeliveryDate: Optional[datetime] = None
    image: Optional[str] = None
    imageUrl: Optional[str] = None
    origin: Optional[OriginModel] = None
    destination: Optional[DestinationModel] = None
    route: Optional[List[CheckpointModel]] = None
    status: Optional[str] = None
    progressPct: Optional[Any] = None
    currentIndex: Optional[Any] = None
    currentLocation: Optional[GeoPointModel] = None


class TrackingPatchRequest(BaseModel):
    trackingId: str = Field(..., min_length=1)
    updates: ShipmentPatchRequest = Field(default_factory=ShipmentPatchRequest)


class LocationUpdateRequest(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    city: Optional[str] = None
    note: Optional[str] = None


class ShipmentListResponse(BaseModel):
    items: List[dict]
    total: int
    page: int
    limit: int


class PatchResultResponse(BaseModel):
    message: str
    updatedRecord: dict


class DeleteResultResponse(BaseModel):
    message: str
    deleted: dict


class PublicAddressModel(BaseModel):
    full: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class PublicOriginModel(BaseModel):
    name: Optional[str] = None
    address: PublicAddressModel
    location: Optional[GeoPointModel] = None


class PublicDestinationModel(BaseModel):
    receiverName: Optional[str] = None
    receiverEmail: Optional[str] = None
    address: PublicAddressModel
    location: Optional[GeoPointModel] = None
    expectedDeliveryDate: Optional[str] = None


class PublicCheckpointModel(BaseModel):
    city: Optional[str] = None
    zip: Optional[str] = None
    location: Optional[GeoPointModel] = None
    eta: Optional[str] = None


class PublicHistoryEntryModel(BaseModel):
    timestamp: Optional[str] = None
    city: Optional[str] = None
    note: Optional[str] = None


class PublicTrackingResponse(BaseModel):
    trackingId: str
    serviceType: Optional[str] = None
    shipmentDetails: Optional[str] = None
    shipmentDate: Optional[str] = None
    expectedDeliveryDate: Optional[str] = None
    productDescription: Optional[str] = None
    quantity: Optional[float] = None
    weightKg: Optional[float] = None
    description: Optional[str] = None
    origin: Optional[PublicOriginModel] = None
    originWarehouse: Optional[str] = None
    destination: PublicDestinationModel
    route: List[PublicCheckpointModel]
    currentIndex: int
    currentLocation: Optional[GeoPointModel] = None
    progressPct: int
    status: str
    locationHistory: List[PublicHistoryEntryModel]
    lastUpdated: Optional[str] = None
    createdAt: Optional[str] = None
    imageUrl: Optional[str] = None
