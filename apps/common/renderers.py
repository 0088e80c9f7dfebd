from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """Wraps plain payloads as {"success": ..., "data": ...}.

    Views that already answer with an envelope (a dict carrying ``success``)
    are rendered untouched, which is how error responses and messages pass
    through.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return super().render(data, accepted_media_type, renderer_context)

        if not (isinstance(data, dict) and "success" in data):
            response = (renderer_context or {}).get("response")
            ok = response is None or response.status_code < 400
            data = {"success": ok, "data": data}
        return super().render(data, accepted_media_type, renderer_context)
