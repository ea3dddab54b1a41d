from lulu_companion.models.credential import AddCredentialRequest, CredentialInfo, CredentialListing

__all__ = ["AddCredentialRequest", "CredentialInfo", "CredentialListing"]
