"""
CRM REST API client
"""
import os
from typing import Any, Dict, Optional, Union

import requests
import structlog

from src.rules.convert import dump_rules
from src.rules.schema import CampaignData, ConditionGroup, SegmentData, SegmentRules

from .auth import AuthSession
from .errors import ApiError, AuthenticationError, TransportError

logger = structlog.get_logger()

DEFAULT_API_URL = 'http://localhost:3001'

RulesPayload = Union[ConditionGroup, SegmentRules, Dict[str, Any]]


def _rules_payload(rules: Optional[RulesPayload]) -> Optional[Dict[str, Any]]:
    if rules is None or isinstance(rules, dict):
        return rules
    return dump_rules(rules)


def _timeout_from_env() -> Optional[float]:
    value = os.getenv('CRM_REQUEST_TIMEOUT')
    return float(value) if value else None


class CrmClient:
    """Client for the CRM backend

    Every call returns the decoded JSON body. Failures raise TransportError,
    ApiError, or AuthenticationError (after clearing the auth session).
    """

    def __init__(
        self,
        base_url: str = None,
        auth: Optional[AuthSession] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or os.getenv('CRM_API_URL', DEFAULT_API_URL)).rstrip('/')
        self.auth = auth
        self.timeout = timeout if timeout is not None else _timeout_from_env()
        self.http = http or requests.Session()

        self.segments = SegmentsApi(self)
        self.campaigns = CampaignsApi(self)
        self.customers = CustomersApi(self)
        self.orders = OrdersApi(self)
        self.ai = AiApi(self)

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        token = self.auth.get_token() if self.auth else None
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def request(self, method: str, endpoint: str, data: Any = None, params: Dict[str, Any] = None) -> Any:
        """Send a request and decode its JSON body"""
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.http.request(
                method,
                url,
                json=data,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("API request error", method=method, endpoint=endpoint, error=str(e))
            raise TransportError(str(e)) from e

        if response.status_code == 401:
            logger.warning("API rejected credentials", endpoint=endpoint)
            if self.auth:
                self.auth.logout()
            raise AuthenticationError()

        body = None
        if response.content:
            try:
                body = response.json()
            except ValueError as e:
                if response.ok:
                    raise TransportError(f"Invalid JSON in response from {endpoint}") from e

        if not response.ok:
            message = body.get('message') if isinstance(body, dict) else None
            logger.error("API error", method=method, endpoint=endpoint, status=response.status_code, message=message)
            raise ApiError(response.status_code, message or 'An error occurred')

        logger.debug("API request succeeded", method=method, endpoint=endpoint, status=response.status_code)
        return body if body is not None else {}

    def get(self, endpoint: str, params: Dict[str, Any] = None) -> Any:
        return self.request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Any) -> Any:
        return self.request('POST', endpoint, data=data)

    def put(self, endpoint: str, data: Any) -> Any:
        return self.request('PUT', endpoint, data=data)

    def delete(self, endpoint: str) -> Any:
        return self.request('DELETE', endpoint)


class _Endpoints:
    def __init__(self, client: CrmClient):
        self.client = client


class SegmentsApi(_Endpoints):

    def list(self, page: int = 1, limit: int = 10) -> Any:
        return self.client.get('/api/segments', params={'page': page, 'limit': limit})

    def get(self, segment_id: str) -> Any:
        return self.client.get(f'/api/segments/{segment_id}')

    def create(self, segment: SegmentData) -> Any:
        return self.client.post('/api/segments', segment.model_dump(mode='json', exclude_none=True))

    def update(self, segment_id: str, segment: SegmentData) -> Any:
        return self.client.put(f'/api/segments/{segment_id}', segment.model_dump(mode='json', exclude_none=True))

    def delete(self, segment_id: str) -> Any:
        return self.client.delete(f'/api/segments/{segment_id}')

    def preview_audience(self, segment_id: Optional[str] = None, rules: Optional[RulesPayload] = None) -> Any:
        """Preview a saved segment's audience, or unsaved rules when no id is given"""
        payload = _rules_payload(rules)
        if segment_id:
            return self.client.post(f'/api/segments/{segment_id}/preview', payload or {})
        return self.client.post('/api/segments/preview', {'rules': payload})


class CampaignsApi(_Endpoints):

    def list(self, page: int = 1, limit: int = 20) -> Any:
        return self.client.get('/api/campaigns', params={'page': page, 'limit': limit})

    def get(self, campaign_id: str) -> Any:
        return self.client.get(f'/api/campaigns/{campaign_id}')

    def stats(self, campaign_id: str) -> Any:
        return self.client.get(f'/api/campaigns/{campaign_id}/stats')

    def create(self, campaign: CampaignData) -> Any:
        payload = campaign.model_dump(
            mode='json',
            by_alias=True,
            exclude_none=True,
            include={'name', 'segment_id', 'message_template', 'objective', 'tags'},
        )
        return self.client.post('/api/campaigns', payload)

    def update(self, campaign_id: str, campaign: CampaignData) -> Any:
        payload = campaign.model_dump(
            mode='json',
            by_alias=True,
            exclude_none=True,
            include={'name', 'segment_id', 'message_template', 'objective', 'status', 'tags'},
        )
        return self.client.put(f'/api/campaigns/{campaign_id}', payload)

    def delete(self, campaign_id: str) -> Any:
        return self.client.delete(f'/api/campaigns/{campaign_id}')

    def execute(self, campaign_id: str) -> Any:
        return self.client.post(f'/api/campaigns/{campaign_id}/execute', {})

    def preview_audience(self, rules: RulesPayload) -> Any:
        return self.client.post('/api/campaigns/preview', {'rules': _rules_payload(rules)})

    def suggestions(self, segment_id: str, purpose: str) -> Any:
        return self.client.post('/api/campaigns/suggestions', {'segmentId': segment_id, 'purpose': purpose})


class CustomersApi(_Endpoints):

    def list(self, page: int = 1, limit: int = 20) -> Any:
        return self.client.get('/api/customers', params={'page': page, 'limit': limit})

    def get(self, customer_id: str) -> Any:
        return self.client.get(f'/api/customers/{customer_id}')

    def create(self, customer: Dict[str, Any]) -> Any:
        return self.client.post('/api/customers', customer)

    def update(self, customer_id: str, customer: Dict[str, Any]) -> Any:
        return self.client.put(f'/api/customers/{customer_id}', customer)

    def delete(self, customer_id: str) -> Any:
        return self.client.delete(f'/api/customers/{customer_id}')


class OrdersApi(_Endpoints):

    def list(self, page: int = 1, limit: int = 20) -> Any:
        return self.client.get('/api/orders', params={'page': page, 'limit': limit})

    def get(self, order_id: str) -> Any:
        return self.client.get(f'/api/orders/{order_id}')

    def create(self, order: Dict[str, Any]) -> Any:
        return self.client.post('/api/orders', order)

    def update(self, order_id: str, order: Dict[str, Any]) -> Any:
        return self.client.put(f'/api/orders/{order_id}', order)

    def delete(self, order_id: str) -> Any:
        return self.client.delete(f'/api/orders/{order_id}')

    def for_customer(self, customer_id: str) -> Any:
        return self.client.get(f'/api/orders/customer/{customer_id}')


class AiApi(_Endpoints):
    """AI suggestion endpoints; rules they return are loaded as-is"""

    def natural_language_to_rules(self, text: str) -> Any:
        return self.client.post('/api/ai/natural-language-to-rules', {'query': text})

    def message_suggestions(self, objective: str, rules: RulesPayload, audience_size: Optional[int] = None) -> Any:
        segment_data = {'rules': _rules_payload(rules)}
        if audience_size is not None:
            segment_data['audienceSize'] = audience_size
        return self.client.post('/api/ai/message-suggestions', {'objective': objective, 'segmentData': segment_data})

    def auto_tag(self, message: str, rules: RulesPayload) -> Any:
        return self.client.post('/api/ai/auto-tag', {'message': message, 'segmentRules': _rules_payload(rules)})

    def campaign_schedule(self, segment_id: str) -> Any:
        return self.client.post('/api/ai/campaign-schedule', {'segmentId': segment_id})

    def lookalike_audience(self, campaign_id: str) -> Any:
        return self.client.post('/api/ai/lookalike-audience', {'campaignId': campaign_id})

    def scheduling_suggestions(self, campaign: CampaignData, rules: Optional[RulesPayload] = None) -> Any:
        return self.client.post('/api/ai/scheduling-suggestions', {
            'campaignData': campaign.model_dump(mode='json', by_alias=True, exclude_none=True),
            'segmentRules': _rules_payload(rules),
        })
