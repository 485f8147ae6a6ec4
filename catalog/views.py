import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authflow.permissions import IsOrderAdmin
from .serializers import ApplyPricingSerializer
from .services import PricingService

logger = logging.getLogger(__name__)


class PricingRangesView(APIView):
    permission_classes = [IsAuthenticated, IsOrderAdmin]

    def get(self, request):
        return Response(PricingService.get_ranges(), status=status.HTTP_200_OK)


class ApplyPricingView(APIView):
    permission_classes = [IsAuthenticated, IsOrderAdmin]

    def post(self, request):
        serializer = ApplyPricingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        percentages = {item["id"]: item["percentage"] for item in serializer.validated_data["ranges"]}
        updated = PricingService.apply_markup(percentages)

        logger.info(f"Pricing applied by {request.user.id}")
        return Response(
            {"message": f"Pricing applied. {updated} product(s) updated.", "updated": updated},
            status=status.HTTP_200_OK,
        )
