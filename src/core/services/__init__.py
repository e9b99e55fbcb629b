# trendboard - Services (Domain Services)
# Pure classification helpers shared by the analytics and ranking components
