import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views import View
from django.views.generic import RedirectView

from marketsync.services.mercadolibre_impl.auth_service import MercadoLibreAuthService
from marketsync.services.mercadolibre_impl.exceptions import MLTokenError

logger = logging.getLogger(__name__)


class MercadoLibreLoginView(RedirectView):
    """
    Sends the seller to the Mercado Libre consent page. This is where an
    operator lands after a sync reports that the session expired.
    """

    permanent = False

    def get_redirect_url(self, *args, **kwargs):
        params = {
            "response_type": "code",
            "client_id": settings.MERCADOLIBRE_CLIENT_ID,
            "redirect_uri": settings.MERCADOLIBRE_REDIRECT_URI,
        }
        return f"{settings.MERCADOLIBRE_AUTH_URL}/authorization?{urlencode(params)}"


class MercadoLibreCallbackView(View):
    """Exchanges the authorization code for the seller's token pair."""

    def get(self, request: HttpRequest, *args, **kwargs) -> HttpResponse:
        code = request.GET.get("code")
        if not code:
            logger.warning("Mercado Libre callback requested without a code.")
            return JsonResponse({"status": "error", "message": "Authorization code not provided."}, status=400)

        try:
            token = MercadoLibreAuthService().init_token_from_code(code=code, redirect_uri=settings.MERCADOLIBRE_REDIRECT_URI)
        except MLTokenError as e:
            logger.error(f"Failed to process Mercado Libre authorization code: {e}")
            return JsonResponse({"status": "error", "message": str(e)}, status=502)

        return JsonResponse({"status": "success", "message": "Mercado Libre account linked successfully.", "seller_id": token.user_id})
