from fastapi import APIRouter

from commission_engine.api.v1.endpoints import commissions, configs, rules, partners

api_router = APIRouter()

api_router.include_router(configs.router, prefix="/configs", tags=["Commission Configs"])
api_router.include_router(rules.router, prefix="/rules", tags=["Commission Rules"])
api_router.include_router(commissions.router, prefix="/sales", tags=["Commissions"])
api_router.include_router(partners.router, prefix="/partner-commissions", tags=["Partner Commissions"])
