from fastapi import APIRouter, Depends

from cashbook.core.dependencies import get_integration_service
from cashbook.schemas.enhanced import (
    EnhancedCustomer,
    EnhancedCustomerListResponse,
    EnhancedSupplier,
    EnhancedSupplierListResponse,
)
from cashbook.services.integration import IntegrationService

router = APIRouter()


@router.get("/customers", response_model=EnhancedCustomerListResponse)
def list_enhanced_customers(service: IntegrationService = Depends(get_integration_service)):
    customers = service.rollups.enhanced_customers()
    return EnhancedCustomerListResponse(total=len(customers), customers=customers)


@router.post("/customers/{customer_id}", response_model=EnhancedCustomer)
def recompute_customer(customer_id: str, service: IntegrationService = Depends(get_integration_service)):
    return service.rollups.recompute_customer(customer_id)


@router.get("/suppliers", response_model=EnhancedSupplierListResponse)
def list_enhanced_suppliers(service: IntegrationService = Depends(get_integration_service)):
    suppliers = service.rollups.enhanced_suppliers()
    return EnhancedSupplierListResponse(total=len(suppliers), suppliers=suppliers)


@router.post("/suppliers/{supplier_id}", response_model=EnhancedSupplier)
def recompute_supplier(supplier_id: str, service: IntegrationService = Depends(get_integration_service)):
    return service.rollups.recompute_supplier(supplier_id)
