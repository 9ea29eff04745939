# Services layer: stores and the auth orchestrators
