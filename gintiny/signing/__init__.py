"""HTTP Signatures checking: parameter parsing, HMAC algorithms, validators and the authenticator."""